"""Protocol Buffers wire-format primitives: varints, keys, and scalar, string, bytes and map codecs."""

__version__ = "0.1.0"

__all__ = ["errors", "wire", "scalars", "lengthdelim", "maps"]