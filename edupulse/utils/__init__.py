from .model_output import parse_model_json

__all__ = ['parse_model_json']
