from .base import Die, Passive, StaticElement, StampData  # noqa: F401
from .passive import Resistor, Lightbulb, LightDependentResistor, Potentiometer  # noqa: F401
from .sources import Battery, BenchSupply  # noqa: F401
from .diodes import Led, RgbLed  # noqa: F401
from .meters import Multimeter  # noqa: F401
from .motor import DcMotor  # noqa: F401
from .controller import Controller  # noqa: F401
from .switches import PushButton, SlideSwitch  # noqa: F401
from .registry import MODEL_TYPES, build_model, internal_shorts  # noqa: F401
