"""
label_modules

Field detection, OCR reconciliation, masking and inpainting for regulated label
text (dates, batch numbers, prices, pack sizes) on product packaging photos.
"""

__version__ = "0.3.0"
