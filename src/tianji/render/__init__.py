"""
TIANJI Render - result card layout and PNG export.
"""

from .card import CardLayout, CardRenderer, build_card_layout, export_card

__all__ = ["CardLayout", "CardRenderer", "build_card_layout", "export_card"]
