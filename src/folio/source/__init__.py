"""Source discovery."""

from folio.source.scanner import SourceScanner

__all__ = ["SourceScanner"]
