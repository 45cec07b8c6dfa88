import functools
from importlib.metadata import PackageNotFoundError, version


@functools.lru_cache(maxsize=None)
def get_readinggroup_version():
    try:
        return version("readinggroup")
    except PackageNotFoundError:
        from readinggroup import get_version

        return get_version()
