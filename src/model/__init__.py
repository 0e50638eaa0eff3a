"""Model classes for persist."""

from model.descriptors import LinkDescriptor, LinkMode, MountDescriptor, RootPlan
from model.entry_state import ActivationReport, EntryResult, EntryState, UnitReport
from model.persistence_config import (
    DirectoryEntry,
    FileEntry,
    PersistenceConfig,
    PersistentRoot,
)
from model.settings import ActivationSettings, MissingSourcePolicy

__all__ = [
    "LinkDescriptor",
    "LinkMode",
    "MountDescriptor",
    "RootPlan",
    "ActivationReport",
    "EntryResult",
    "EntryState",
    "UnitReport",
    "DirectoryEntry",
    "FileEntry",
    "PersistenceConfig",
    "PersistentRoot",
    "ActivationSettings",
    "MissingSourcePolicy",
]
