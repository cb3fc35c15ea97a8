"""File-backed metastore storage engine.

This module implements namespace, element type, and element CRUD over a
directory tree: one folder per namespace, one folder per element type
holding a reserved type document, and one document per element.

Every public method holds the store lock for its whole duration. Private
``_``-prefixed helpers assume the lock is already held and never poll it.
"""

from __future__ import annotations

import copy

from core.config import MetastoreConfig
from core.constants import DEFAULT_LOCK_POLL_SECONDS, DEFAULT_LOCK_TIMEOUT_SECONDS
from core.constants import DEFAULT_META_FOLDER_NAME, STORE_NAME_PREFIX
from core.errors import (
    DecodeError,
    DependencyExistsError,
    ElementExistsError,
    ElementTypeExistsError,
    ForeignElementTypeError,
    NamespaceExistsError,
    NotFoundError,
    StorageError,
)
from core.logging_config import get_logger
from core.types import (
    Attribute,
    AttributeValue,
    Describable,
    Record,
    RecordKind,
    new_attribute,
    new_element,
    new_element_type,
)
from store.cache_index import CacheIndex
from store.filesystem import FileSystem, open_filesystem
from store.path_convention import PathConvention, validate_name
from store.record_codec import RecordCodec, codec_for_format
from store.store_lock import StoreLock

_LOGGER = get_logger(__name__)


class StorageEngine:
    """Hierarchical metastore persisted as documents on a filesystem.

    The engine owns its cache and lock. Records returned to callers are
    independent copies tagged with the store name.
    """

    def __init__(
        self,
        filesystem: FileSystem,
        codec: RecordCodec,
        meta_folder_name: str = DEFAULT_META_FOLDER_NAME,
        name: str | None = None,
        lock_poll_seconds: float = DEFAULT_LOCK_POLL_SECONDS,
        lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
        cache: CacheIndex | None = None,
    ) -> None:
        """Initialize engine and ensure the meta folder exists.

        Args:
            filesystem: Backend holding the directory tree.
            codec: Record document codec.
            meta_folder_name: Folder under the root that holds namespaces.
            name: Store name stamped on element type handles.
            lock_poll_seconds: Store lock retry interval.
            lock_timeout_seconds: Store lock total wait bound.
            cache: Optional shared cache; a private one by default.

        Raises:
            StorageError: If the meta folder cannot be created.
        """
        self._filesystem = filesystem
        self._codec = codec
        self._paths = PathConvention(
            extension=codec.extension,
            type_document_name=codec.type_document_name,
            meta_folder_name=meta_folder_name,
        )
        self._cache = cache if cache is not None else CacheIndex()
        self._lock = StoreLock(
            filesystem,
            self._paths.lock_marker,
            poll_interval=lock_poll_seconds,
            timeout=lock_timeout_seconds,
        )
        self._name = name or f"{STORE_NAME_PREFIX}{filesystem.uri}"
        if not filesystem.is_folder(self._paths.meta_folder):
            filesystem.create_folder(self._paths.meta_folder)

    @classmethod
    def from_config(
        cls, config: MetastoreConfig, filesystem: FileSystem | None = None
    ) -> "StorageEngine":
        """Build an engine from runtime configuration.

        Args:
            config: Runtime configuration.
            filesystem: Optional backend overriding the configured root.

        Returns:
            Configured storage engine.
        """
        return cls(
            filesystem if filesystem is not None else open_filesystem(config),
            codec_for_format(config.document_format),
            meta_folder_name=config.meta_folder_name,
            name=config.store_name,
            lock_poll_seconds=config.lock_poll_seconds,
            lock_timeout_seconds=config.lock_timeout_seconds,
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def paths(self) -> PathConvention:
        return self._paths

    @property
    def cache(self) -> CacheIndex:
        return self._cache

    @property
    def lock(self) -> StoreLock:
        return self._lock

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StorageEngine):
            return NotImplemented
        return self._name.casefold() == other._name.casefold()

    def __hash__(self) -> int:
        return hash(self._name.casefold())

    def __repr__(self) -> str:
        return f"StorageEngine(name={self._name!r})"

    # Namespaces

    def list_namespaces(self) -> list[str]:
        """Return namespace names in filesystem enumeration order."""
        with self._lock.hold():
            return self._list_folder_names(self._paths.meta_folder)

    def namespace_exists(self, namespace: str) -> bool:
        folder = self._paths.namespace_folder(namespace)
        with self._lock.hold():
            return self._filesystem.exists(folder)

    def create_namespace(self, namespace: str) -> None:
        """Create an empty namespace.

        Raises:
            NamespaceExistsError: If the namespace folder already exists.
        """
        folder = self._paths.namespace_folder(namespace)
        with self._lock.hold():
            if self._filesystem.exists(folder):
                raise NamespaceExistsError(
                    f"The namespace with name '{namespace}' already exists.",
                    self._list_folder_names(self._paths.meta_folder),
                )
            self._filesystem.create_folder(folder)
        _LOGGER.info("namespace_created", store=self._name, namespace=namespace)

    def delete_namespace(self, namespace: str) -> None:
        """Delete a namespace that holds no element types.

        Raises:
            DependencyExistsError: If element types remain in the namespace.
            StorageError: If the filesystem refuses to remove the folder.
        """
        folder = self._paths.namespace_folder(namespace)
        with self._lock.hold():
            if not self._filesystem.exists(folder):
                return
            element_types = self._list_element_types(namespace)
            if element_types:
                raise DependencyExistsError(
                    f"Unable to delete namespace '{namespace}' as it still contains "
                    "element types. Delete them first.",
                    [str(element_type.id) for element_type in element_types],
                )
            if not self._filesystem.delete(folder):
                raise StorageError(
                    f"Unable to delete namespace folder '{folder}'. "
                    "Check that it contains no stray files."
                )
        _LOGGER.info("namespace_deleted", store=self._name, namespace=namespace)

    # Element types

    def new_element_type(self, namespace: str) -> Record:
        return new_element_type(namespace=namespace)

    def list_element_types(self, namespace: str) -> list[Record]:
        """Return every element type whose type document is present."""
        self._paths.namespace_folder(namespace)
        with self._lock.hold():
            return self._list_element_types(namespace)

    def list_element_type_ids(self, namespace: str) -> list[str]:
        folder = self._paths.namespace_folder(namespace)
        with self._lock.hold():
            return self._list_folder_names(folder)

    def get_element_type(self, namespace: str, element_type_id: str) -> Record | None:
        """Load one element type by id, or None when its document is absent."""
        self._paths.element_type_document(namespace, element_type_id)
        with self._lock.hold():
            return self._get_element_type(namespace, element_type_id)

    def get_element_type_by_name(self, namespace: str, name: str) -> Record | None:
        """Return the first element type whose name matches, ignoring case."""
        self._paths.namespace_folder(namespace)
        with self._lock.hold():
            for element_type in self._list_element_types(namespace):
                if element_type.name is not None and _same_name(element_type.name, name):
                    return element_type
            return None

    def create_element_type(self, namespace: str, element_type: Describable) -> None:
        """Persist a new element type under a namespace.

        The id defaults to the name; the folder is named after the name.

        Raises:
            ElementTypeExistsError: If the folder and type document exist.
        """
        if element_type.id is None:
            element_type.id = element_type.name
        type_name = _type_name(element_type)
        folder = self._paths.element_type_folder(namespace, type_name)
        document = self._paths.element_type_document(namespace, type_name)
        with self._lock.hold():
            if self._filesystem.exists(folder) and self._filesystem.exists(document):
                raise ElementTypeExistsError(
                    f"The element type '{type_name}' already exists in namespace "
                    f"'{namespace}' with the same id.",
                    self._list_element_types(namespace),
                )
            self._write_element_type(namespace, element_type)
        _stamp(element_type, namespace, self._name)
        _LOGGER.info(
            "element_type_created", store=self._name, namespace=namespace, element_type=type_name
        )

    def update_element_type(self, namespace: str, element_type: Describable) -> None:
        """Rewrite an existing element type document in place.

        Raises:
            NotFoundError: If the element type folder does not exist.
        """
        type_name = _type_name(element_type)
        folder = self._paths.element_type_folder(namespace, type_name)
        with self._lock.hold():
            if not self._filesystem.exists(folder):
                raise NotFoundError(
                    f"The element type with id '{element_type.id}' doesn't exist in "
                    f"namespace '{namespace}' so it can't be updated."
                )
            self._write_element_type(namespace, element_type)
        _LOGGER.info(
            "element_type_updated", store=self._name, namespace=namespace, element_type=type_name
        )

    def delete_element_type(self, namespace: str, element_type: Describable) -> None:
        """Delete an element type that holds no elements.

        Raises:
            DependencyExistsError: If elements remain under the type.
            DecodeError: If any element document cannot be decoded.
            StorageError: If stray entries remain in the folder, or the document
                or folder cannot be removed.
        """
        type_name = _type_name(element_type)
        folder = self._paths.element_type_folder(namespace, type_name)
        document = self._paths.element_type_document(namespace, type_name)
        with self._lock.hold():
            if not self._filesystem.exists(document):
                return
            elements = self._list_elements(namespace, type_name, errors=None)
            if elements:
                raise DependencyExistsError(
                    f"Unable to delete element type '{type_name}' in namespace "
                    f"'{namespace}' because there are still elements present.",
                    [str(element.id) for element in elements],
                )
            stray_entries = [
                entry.name
                for entry in self._filesystem.list_children(folder)
                if entry.name != self._paths.type_document_name
            ]
            if stray_entries:
                raise StorageError(
                    f"Unable to delete element type folder '{folder}': it still holds "
                    f"{', '.join(sorted(stray_entries))}. Remove these entries first."
                )
            if not self._filesystem.delete(document):
                raise StorageError(f"Unable to delete element type document '{document}'")
            if not self._filesystem.delete(folder):
                raise StorageError(
                    f"Unable to delete element type folder '{folder}'. "
                    "Check that it contains no stray files."
                )
            self._cache.unregister_type_id(namespace, element_type.id or type_name)
            self._cache.unmark_processed(folder)
            self._cache.unmark_processed(document)
        _LOGGER.info(
            "element_type_deleted", store=self._name, namespace=namespace, element_type=type_name
        )

    # Elements

    def new_element(self) -> Record:
        return new_element()

    def new_attribute(self, attribute_id: str, value: AttributeValue = None) -> Attribute:
        return new_attribute(attribute_id, value)

    def list_elements(
        self,
        namespace: str,
        element_type: Describable,
        errors: list[DecodeError] | None = None,
    ) -> list[Record]:
        """Load every element of a type.

        Args:
            namespace: Namespace name.
            element_type: Element type handle.
            errors: When given, decode failures are appended here and the
                element is skipped; otherwise the first failure propagates.

        Returns:
            Decoded elements.
        """
        type_name = _type_name(element_type)
        self._paths.element_type_folder(namespace, type_name)
        with self._lock.hold():
            return self._list_elements(namespace, type_name, errors)

    def list_element_ids(self, namespace: str, element_type: Describable) -> list[str]:
        type_name = _type_name(element_type)
        self._paths.element_type_folder(namespace, type_name)
        with self._lock.hold():
            return self._list_element_ids(namespace, type_name)

    def get_element(
        self, namespace: str, element_type: Describable, element_id: str
    ) -> Record | None:
        """Load one element by id, or None when its document is absent."""
        type_name = _type_name(element_type)
        self._paths.element_document(namespace, type_name, element_id)
        with self._lock.hold():
            return self._get_element(namespace, type_name, element_id)

    def get_element_by_name(
        self, namespace: str, element_type: Describable, name: str
    ) -> Record | None:
        """Find an element by case-insensitive name.

        A cached id is only trusted after the loaded element's name is
        confirmed; otherwise every element of the type is scanned.
        """
        type_name = _type_name(element_type)
        self._paths.element_type_folder(namespace, type_name)
        with self._lock.hold():
            cached_id = self._cache.lookup_element_id(namespace, type_name, name)
            if cached_id is not None:
                element = self._get_cached_candidate(namespace, type_name, cached_id)
                if element is not None and element.name is not None:
                    if _same_name(element.name, name):
                        return element
            errors: list[DecodeError] = []
            for element in self._list_elements(namespace, type_name, errors):
                if element.name is not None and _same_name(element.name, name):
                    return element
            return None

    def create_element(
        self, namespace: str, element_type: Describable, element: Record
    ) -> None:
        """Persist a new element document.

        The id defaults to the name. After a successful create the element's
        id is set to its stored name.

        Raises:
            ElementExistsError: If a document with the same id exists.
        """
        if element.id is None:
            element.id = element.name
        type_name = _type_name(element_type)
        element_id = validate_name(element.id, "element id")
        document = self._paths.element_document(namespace, type_name, element_id)
        stored = _element_document(element)
        data = self._codec.serialize(stored)
        with self._lock.hold():
            if self._filesystem.exists(document):
                raise ElementExistsError(
                    f"The specified element already exists with the same id: '{element_id}'",
                    self._list_elements(namespace, type_name, errors=[]),
                )
            self._filesystem.write_bytes(document, data)
            self._remember_element(namespace, type_name, element_id, document, stored.name)
        if stored.name is not None:
            element.id = stored.name
        _LOGGER.info(
            "element_created",
            store=self._name,
            namespace=namespace,
            element_type=type_name,
            element_id=element_id,
        )

    def update_element(
        self,
        namespace: str,
        element_type: Record,
        element_id: str,
        element: Record,
    ) -> None:
        """Rewrite an element document.

        The element's stored name stays authoritative for its id: when the
        name differs from ``element_id`` the document moves to the new id.

        Raises:
            ForeignElementTypeError: If the type handle belongs to another store.
            NotFoundError: If no document exists for ``element_id``.
            ElementExistsError: If a rename target document already exists.
            StorageError: If the old document of a rename cannot be removed;
                the new document is rolled back first.
        """
        if element_type.metastore_name is None or element_type.metastore_name != self._name:
            raise ForeignElementTypeError(
                f"The element type '{element_type.name}' needs to explicitly belong to the "
                f"meta store '{self._name}' in which you are updating. "
                "Retrieve the element type from this store first."
            )
        type_name = _type_name(element_type)
        old_document = self._paths.element_document(namespace, type_name, element_id)
        new_id = element_id
        if element.name is not None and not _same_name(element.name, element_id):
            new_id = validate_name(element.name, "element id")
        new_document = self._paths.element_document(namespace, type_name, new_id)
        stored = _element_document(element)
        data = self._codec.serialize(stored)
        with self._lock.hold():
            if not self._filesystem.exists(old_document):
                raise NotFoundError(
                    f"The specified element to update doesn't exist with id: '{element_id}'"
                )
            if new_id != element_id and self._filesystem.exists(new_document):
                raise ElementExistsError(
                    f"Unable to rename element '{element_id}' to '{new_id}': "
                    "an element with that id already exists.",
                    self._list_elements(namespace, type_name, errors=[]),
                )
            self._filesystem.write_bytes(new_document, data)
            if new_id != element_id:
                if not self._filesystem.delete(old_document):
                    self._filesystem.delete(new_document)
                    self._cache.unmark_processed(new_document)
                    raise StorageError(
                        f"Unable to delete renamed element document '{old_document}'. "
                        f"The element was left under id '{element_id}'."
                    )
                self._cache.unregister_element_id(namespace, type_name, element_id)
                self._cache.unmark_processed(old_document)
            self._remember_element(namespace, type_name, new_id, new_document, stored.name)
        element.id = new_id
        _LOGGER.info(
            "element_updated",
            store=self._name,
            namespace=namespace,
            element_type=type_name,
            element_id=new_id,
            previous_id=element_id,
        )

    def delete_element(
        self, namespace: str, element_type: Describable, element_id: str
    ) -> None:
        """Delete an element document; absent elements are ignored.

        Raises:
            StorageError: If the filesystem refuses the deletion.
        """
        type_name = _type_name(element_type)
        document = self._paths.element_document(namespace, type_name, element_id)
        with self._lock.hold():
            if not self._filesystem.exists(document):
                return
            if not self._filesystem.delete(document):
                raise StorageError(
                    f"Unable to delete element with id '{element_id}' in file '{document}'"
                )
            self._cache.unregister_element_id(namespace, type_name, element_id)
            self._cache.unmark_processed(document)
        _LOGGER.info(
            "element_deleted",
            store=self._name,
            namespace=namespace,
            element_type=type_name,
            element_id=element_id,
        )

    # Lock-held helpers

    def _list_folder_names(self, folder: str) -> list[str]:
        return [
            entry.name
            for entry in self._filesystem.list_children(folder)
            if entry.is_folder and not entry.is_hidden
        ]

    def _list_element_types(self, namespace: str) -> list[Record]:
        folder = self._paths.namespace_folder(namespace)
        element_types: list[Record] = []
        for type_id in self._list_folder_names(folder):
            element_type = self._get_element_type(namespace, type_id)
            if element_type is not None:
                element_types.append(element_type)
        return element_types

    def _get_element_type(self, namespace: str, type_id: str) -> Record | None:
        document = self._paths.element_type_document(namespace, type_id)
        record = self._load_document(document, RecordKind.ELEMENT_TYPE)
        if record is None:
            return None
        record.id = type_id
        _stamp(record, namespace, self._name)
        self._cache.register_type_id(namespace, record.name or type_id, type_id)
        return record

    def _write_element_type(self, namespace: str, element_type: Describable) -> None:
        type_name = _type_name(element_type)
        folder = self._paths.element_type_folder(namespace, type_name)
        document = self._paths.element_type_document(namespace, type_name)
        stored = Record(
            kind=RecordKind.ELEMENT_TYPE,
            id=element_type.id,
            name=element_type.name,
            description=element_type.description,
        )
        data = self._codec.serialize(stored)
        if not self._filesystem.exists(folder):
            self._filesystem.create_folder(folder)
        self._filesystem.write_bytes(document, data)
        self._cache.register_type_id(namespace, type_name, element_type.id or type_name)
        self._cache.mark_processed(folder, self._filesystem.last_modified(folder))
        self._cache.mark_processed(document, self._filesystem.last_modified(document))

    def _list_element_ids(self, namespace: str, type_name: str) -> list[str]:
        folder = self._paths.element_type_folder(namespace, type_name)
        element_ids: list[str] = []
        for entry in self._filesystem.list_children(folder):
            if entry.is_folder or entry.is_hidden:
                continue
            element_id = self._paths.element_id_from_filename(entry.name)
            if element_id is not None:
                element_ids.append(element_id)
        return element_ids

    def _list_elements(
        self,
        namespace: str,
        type_name: str,
        errors: list[DecodeError] | None,
    ) -> list[Record]:
        elements: list[Record] = []
        for element_id in self._list_element_ids(namespace, type_name):
            try:
                element = self._get_element(namespace, type_name, element_id)
            except DecodeError as error:
                if errors is None:
                    raise
                errors.append(error)
                _LOGGER.warning(
                    "element_load_failed",
                    store=self._name,
                    namespace=namespace,
                    element_type=type_name,
                    element_id=element_id,
                    error=str(error),
                )
                continue
            if element is not None:
                elements.append(element)
        return elements

    def _get_element(self, namespace: str, type_name: str, element_id: str) -> Record | None:
        document = self._paths.element_document(namespace, type_name, element_id)
        record = self._load_document(document, RecordKind.ELEMENT)
        if record is None:
            return None
        record.id = element_id
        record.namespace = namespace
        record.metastore_name = self._name
        if record.name is not None:
            self._cache.register_element_id(namespace, type_name, record.name, element_id)
        return record

    def _get_cached_candidate(
        self, namespace: str, type_name: str, element_id: str
    ) -> Record | None:
        try:
            return self._get_element(namespace, type_name, element_id)
        except DecodeError:
            self._cache.unregister_element_id(namespace, type_name, element_id)
            return None

    def _load_document(self, document: str, kind: RecordKind) -> Record | None:
        """Read a document, reusing the cached decode when unchanged."""
        if not self._filesystem.exists(document):
            return None
        timestamp = self._filesystem.last_modified(document)
        data = self._filesystem.read_bytes(document)
        record = self._cache.cached_record(document, timestamp, data)
        if record is not None:
            return record
        try:
            record = self._codec.parse(data, kind)
        except DecodeError as error:
            self._cache.unmark_processed(document)
            raise DecodeError(
                f"Could not load metastore {kind.value} '{document}': {error}"
            ) from error
        self._cache.mark_processed(document, timestamp, record, data)
        return record

    def _remember_element(
        self,
        namespace: str,
        type_name: str,
        element_id: str,
        document: str,
        name: str | None,
    ) -> None:
        if name is not None:
            self._cache.register_element_id(namespace, type_name, name, element_id)
        self._cache.mark_processed(document, self._filesystem.last_modified(document))


def _type_name(element_type: Describable) -> str:
    """Return the folder name of an element type handle."""
    name = element_type.name if element_type.name is not None else element_type.id
    return validate_name(name, "element type")


def _same_name(left: str, right: str) -> bool:
    return left.casefold() == right.casefold()


def _stamp(element_type: Describable, namespace: str, store_name: str) -> None:
    element_type.namespace = namespace  # type: ignore[attr-defined]
    element_type.metastore_name = store_name  # type: ignore[attr-defined]


def _element_document(element: Record) -> Record:
    return Record(
        kind=RecordKind.ELEMENT,
        name=element.name,
        value=element.value,
        children=copy.deepcopy(element.children),
    )
