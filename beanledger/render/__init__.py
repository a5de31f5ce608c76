"""Renderer 모듈"""

from beanledger.render.renderer import LedgerRenderer, render

__all__ = [
    "LedgerRenderer",
    "render",
]
