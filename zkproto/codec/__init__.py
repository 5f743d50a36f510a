"""Binary payload codec."""

from .messages import CodecError as CodecError
from .messages import CodecResult as CodecResult
from .messages import EncodeResult as EncodeResult
from .messages import PayloadDecodeError as PayloadDecodeError
from .messages import PayloadEncodeError as PayloadEncodeError
from .messages import decode_hex as decode_hex
from .messages import decode_message as decode_message
from .messages import encode_message as encode_message
from .numeric import DecimalNumber as DecimalNumber
from .numeric import ExactInteger as ExactInteger
from .numeric import OpaqueNumericString as OpaqueNumericString
from .numeric import normalize as normalize
from .preview import PayloadPreview as PayloadPreview
from .preview import preview_payload as preview_payload
