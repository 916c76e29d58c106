from dmsoundex.daitch_mokotoff import (
    ConfigurationError,
    DaitchMokotoffConfig,
    DaitchMokotoffSoundex,
    EncoderError,
    encode,
    full_encode,
)

__all__ = [
    "ConfigurationError",
    "DaitchMokotoffConfig",
    "DaitchMokotoffSoundex",
    "EncoderError",
    "encode",
    "full_encode",
]
