from . import retreat
from . import locations
from . import messages

__all__ = [
    "retreat",
    "locations",
    "messages",
]
