from .restorer import BLEND_MODES, MASK_CHANNELS, DetailRestorer, RestoreOptions, select_mask_channel

__all__ = ["DetailRestorer", "RestoreOptions", "select_mask_channel", "BLEND_MODES", "MASK_CHANNELS"]
