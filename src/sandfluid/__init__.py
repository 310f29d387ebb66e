from .vector2 import Vector2
from .errors import InvalidConfiguration
from .field import VelocityField, NumbaConfig
from .particles import (
    ParticleKind,
    KindConstants,
    KIND_CONSTANTS,
    ParticleBody,
    ParticleSnapshot,
)
from .spatial_hash import SpatialHashGrid
from .system import ParticleSystem
from .api import (
    FieldConfig,
    ParticleConfig,
    SimulationConfig,
    Simulation,
    create_field,
    create_particle,
)

__all__ = [
    "Vector2",
    "InvalidConfiguration",
    "VelocityField",
    "NumbaConfig",
    "ParticleKind",
    "KindConstants",
    "KIND_CONSTANTS",
    "ParticleBody",
    "ParticleSnapshot",
    "SpatialHashGrid",
    "ParticleSystem",
    "FieldConfig",
    "ParticleConfig",
    "SimulationConfig",
    "Simulation",
    "create_field",
    "create_particle",
]
