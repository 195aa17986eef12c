from .codec import DecodeFailure, decode_envelope, encode_envelope

__all__ = [
    "DecodeFailure",
    "decode_envelope",
    "encode_envelope",
]
