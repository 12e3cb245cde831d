from .ramp_api import RampApiProvider

__all__ = ["RampApiProvider"]
