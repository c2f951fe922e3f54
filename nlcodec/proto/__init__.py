"""Runtime support for modules generated by nlcodec."""

from .serialization import LengthError as LengthError
from .serialization import SerializationError as SerializationError
from .structs import AttributeFormatError as AttributeFormatError
