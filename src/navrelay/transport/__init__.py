"""Message channel layer.

- framing: native-endian length-prefixed JSON frames
- base: channel abstraction and state
- stdio: channel over subprocess pipes or the process's own stdio
- manifest: native host manifest lookup and installation
"""

from .base import ChannelState, FailedChannel, MessageChannel
from .framing import MAX_FROM_HOST, MAX_TO_HOST, decode_frame, encode_frame, read_frame
from .manifest import NativeHostManifest, find_manifest, install_manifest
from .stdio import StreamChannel, connect_native, open_stdio_channel

__all__ = [
    "ChannelState",
    "FailedChannel",
    "MessageChannel",
    "MAX_FROM_HOST",
    "MAX_TO_HOST",
    "decode_frame",
    "encode_frame",
    "read_frame",
    "NativeHostManifest",
    "find_manifest",
    "install_manifest",
    "StreamChannel",
    "connect_native",
    "open_stdio_channel",
]
