"""Vehicle registry backends."""
from platestream.registry.VehicleRegistry import (
    HttpVehicleRegistry,
    InMemoryVehicleRegistry,
    VehicleRegistry,
)

__all__ = ['HttpVehicleRegistry', 'InMemoryVehicleRegistry', 'VehicleRegistry']
