#!/usr/bin/env python
import re

from setuptools import find_packages, setup

with open("readinggroup/__init__.py", "r") as f:
    VERSION = ".".join(re.search(r"VERSION = \((.*)\)", f.read()).group(1).split(", "))

INSTALL_REQUIREMENTS = [
    "boto3",
    "celery[redis]>=5.3",
    "Django>=4.2",
    "django-ninja>=1.0",
    "django-redis",
    "django-storages[s3]",
    "django-structlog>=8.0",
    "psycopg2-binary",
    "pydantic>=2",
    "sentry-sdk",
    "structlog",
]
TEST_REQUIREMENTS = ["pytest", "pytest-django"]
SCRIPTS = ["manage.py"]
DESCRIPTION = "Reading group topic proposals and voting"
CLASSIFIERS = """\
Environment :: Web Environment
Framework :: Django
Programming Language :: Python
Programming Language :: Python :: 3
""".splitlines()

with open("README.md", "r") as f:
    LONG_DESCRIPTION = f.read()


setup(
    name="readinggroup",
    version=VERSION,
    description=DESCRIPTION,
    long_description=LONG_DESCRIPTION,
    long_description_content_type="text/markdown",
    packages=find_packages(include=["readinggroup", "readinggroup.*"]),
    include_package_data=True,
    scripts=SCRIPTS,
    install_requires=INSTALL_REQUIREMENTS,
    extras_require={"test": TEST_REQUIREMENTS},
    python_requires=">=3.9",
    classifiers=CLASSIFIERS,
)
