from .base import BaseVisionBackend
from .openai_vision import OpenAIVisionBackend
__all__ = ['BaseVisionBackend', 'OpenAIVisionBackend']
