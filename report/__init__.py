from .analyzer import SummaryBuilder

__all__ = ['SummaryBuilder']
