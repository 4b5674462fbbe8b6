from .projector import Projector, load_raw_payload

__all__ = ["Projector", "load_raw_payload"]
