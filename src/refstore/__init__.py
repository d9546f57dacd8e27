"""refstore: normalized reactive entity cache with pagination and reference binding."""

from importlib.metadata import version as _version

__version__ = _version("refstore")

from refstore._tracking import get_pending_count
from refstore.action import action, transaction
from refstore.computed import Computed, Readable, combine, computed
from refstore.config import Capability, StoreOptions
from refstore.entity_store import (
    BindingMode,
    EntityStore,
    NewElements,
    ReferenceBinding,
    UpdateAttempt,
    new_update_id,
)
from refstore.exceptions import (
    CapabilityError,
    InvalidPathError,
    MissingPrimaryKeyError,
    PageFormatError,
    PrimaryKeyMismatchError,
    StoreConfigError,
    StoreError,
)
from refstore.factory import CapabilityStore, create_store
from refstore.mapped_store import MappedStore
from refstore.observable import Observable
from refstore.page import Page
from refstore.paginated_store import PaginatedStore
from refstore.paths import FieldPath
from refstore.presentation import patch_page, present_items, resolve_references
from refstore.reaction import Reaction, autorun, reaction
from refstore.stream import EventStream

__all__ = [
    "Observable",
    "Readable",
    "Computed",
    "computed",
    "combine",
    "Reaction",
    "autorun",
    "reaction",
    "action",
    "transaction",
    "get_pending_count",
    "EventStream",
    "Page",
    "FieldPath",
    "present_items",
    "resolve_references",
    "patch_page",
    "EntityStore",
    "BindingMode",
    "ReferenceBinding",
    "NewElements",
    "UpdateAttempt",
    "new_update_id",
    "PaginatedStore",
    "MappedStore",
    "Capability",
    "StoreOptions",
    "CapabilityStore",
    "create_store",
    "StoreError",
    "StoreConfigError",
    "InvalidPathError",
    "CapabilityError",
    "MissingPrimaryKeyError",
    "PageFormatError",
    "PrimaryKeyMismatchError",
]
