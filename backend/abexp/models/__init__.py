"""Database models."""
from abexp.models.experiment import ExperimentRecord, ExperimentVariantRecord
from abexp.models.device import DeviceRecord

__all__ = ["ExperimentRecord", "ExperimentVariantRecord", "DeviceRecord"]
