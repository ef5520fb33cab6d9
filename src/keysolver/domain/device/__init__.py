from ._device import Device, DeviceType, device_from_solver_mode

__all__ = [
    Device.__name__,
    DeviceType.__name__,
    device_from_solver_mode.__name__,
]
