"""i18n translation management for system chat texts."""
import json
from pathlib import Path
from typing import Dict, Any

# Translation file directory
I18N_DIR = Path(__file__).parent

# Translation cache
_translations: Dict[str, Dict[str, Any]] = {}

SUPPORTED_LANGUAGES = {"en", "zh"}
DEFAULT_LANGUAGE = "en"


def normalize_language(language: str) -> str:
    """Validate a language code, defaulting to English for anything unknown."""
    if not isinstance(language, str):
        return DEFAULT_LANGUAGE

    language = language.strip().lower()

    # Only allow alphanumeric to prevent path traversal
    if not language.isalnum():
        return DEFAULT_LANGUAGE

    return language if language in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def load_translations(language: str) -> Dict[str, Any]:
    """Load translation file for specified language."""
    language = normalize_language(language)

    if language not in _translations:
        file_path = I18N_DIR / f"{language}.json"
        with open(file_path, 'r', encoding='utf-8') as f:
            _translations[language] = json.load(f)
    return _translations[language]


def _lookup(tree: Dict[str, Any], key: str) -> Any:
    node: Any = tree
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def t(key: str, language: str = DEFAULT_LANGUAGE, **kwargs) -> str:
    """
    Render a system chat text.

    Args:
        key: Dotted key into the language file, e.g. "game.begin"
        language: "en" or "zh"; anything else renders English
        **kwargs: Values for the template placeholders

    Returns:
        The rendered text. A missing key renders as the key itself and a
        template with missing placeholders is returned unformatted.
    """
    template = _lookup(load_translations(language), key)
    if not isinstance(template, str):
        return key
    if not kwargs:
        return template
    try:
        return template.format(**kwargs)
    except (KeyError, ValueError):
        return template
