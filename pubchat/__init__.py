from .session import Session
from .surface import Surface, Pane, Rect, layout
from .input_controller import InputController
from .transport import Transport, PubNubTransport, decode_payload
from .error import ErrorLog, ErrorKind

__version__ = '1.0.0'
