# Storage module initialization
from .base_storage import StorageInterface, Status, Record
from .measured_storage import MeasuredStorage
from .storage_factory import create_storage, STORAGE_BACKENDS

__all__ = ['StorageInterface', 'Status', 'Record', 'MeasuredStorage', 'create_storage', 'STORAGE_BACKENDS']
