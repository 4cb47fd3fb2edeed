from .dispatch import InlineDispatcher, ThreadDispatcher  # noqa: F401
from .pins import (  # noqa: F401
    ControllerSimulator,
    PinBridge,
    anchor_voltage,
    controller_pin_levels,
    pin_level,
)
