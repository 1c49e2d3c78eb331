"""i18n module for system chat texts."""

from .translations import t, load_translations, normalize_language

__all__ = ["t", "load_translations", "normalize_language"]
