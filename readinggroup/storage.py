from django.core.files.storage import storages
from django.utils.functional import LazyObject


class LazyDocumentStorage(LazyObject):
    def _setup(self):
        self._wrapped = storages["documents"]


# Uploaded reading material. The LazyObject defers the lookup until first use
# so tests can swap the "documents" storage with override_settings.
DOCUMENT_STORAGE = LazyDocumentStorage()
