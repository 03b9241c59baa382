from .base import Base
from .profile import Profile
from .customer import ChemicalRecord, Consultation, Customer
from .timeline import Recipe, Timeline
from .subscription import Subscription
from .event import Event
from .error_code import ErrorCode

__all__ = [
    "Base",
    "Profile",
    "Customer",
    "Consultation",
    "ChemicalRecord",
    "Timeline",
    "Recipe",
    "Subscription",
    "Event",
    "ErrorCode",
]
