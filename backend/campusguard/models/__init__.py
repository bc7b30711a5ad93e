# Importe tous les modèles pour enregistrer leurs tables dans Base.metadata
# avant que SQLAlchemy tente de résoudre les clés étrangères inter-modèles.
# rooms doit précéder devices, devices doit précéder les événements et relevés.

from campusguard.models.user import User  # noqa: F401
from campusguard.models.student import Student  # noqa: F401
from campusguard.models.room import Room  # noqa: F401
from campusguard.models.device import Device, DeviceType  # noqa: F401
from campusguard.models.monitoring import (  # noqa: F401
    AccessEvent,
    AccessResult,
    MonitoringSettings,
    TelemetryReading,
)
