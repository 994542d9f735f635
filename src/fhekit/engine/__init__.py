"""Native engine interface and implementations."""

from .base import CompressionMode, NativeEngine, NativeKind

__all__ = ["CompressionMode", "NativeEngine", "NativeKind"]
