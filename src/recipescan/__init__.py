"""
RecipeScan - digitize paper recipe cards.

Pipeline:
- Images: normalize and rotate captured photos
- OCR: turn the ordered photos into one text blob
- Providers: structure the text with an AI provider
- Store: keep recipes locally, import/export, shopping lists
"""

__version__ = "1.0.0"
