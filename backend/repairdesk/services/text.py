"""Keyword extraction shared by analytics and inventory inference.

Descriptions are written by counter staff in Spanish or English, so the
vocabulary below covers both. Tokens are lowercased Unicode words of at
least three characters, excluding pure numbers and stop words.
"""

from __future__ import annotations

import re
from typing import FrozenSet, Iterable, Tuple

_WORD_RE = re.compile(r"\w+", re.UNICODE)
_MIN_TOKEN_LENGTH = 3

STOP_WORDS: FrozenSet[str] = frozenset(
    {
        # es
        "con", "del", "las", "los", "una", "uno", "por", "para", "que",
        "sin", "muy", "pero", "mas", "más", "como", "esta", "está", "este",
        "tiene", "cuando", "solo", "sólo", "hay", "fue", "ser", "equipo",
        "cliente", "dice", "no", "sus", "desde", "hace", "veces",
        # en
        "the", "and", "for", "with", "not", "does", "doesn", "when",
        "after", "from", "has", "have", "was", "are", "but", "its", "this",
        "that", "device", "phone", "customer", "says", "won",
    }
)

# Ordered: the first bucket that matches wins.
COMPONENT_KEYWORDS: Tuple[Tuple[str, FrozenSet[str]], ...] = (
    ("water_damage", frozenset({"agua", "mojado", "mojó", "humedad", "liquido", "líquido", "water", "liquid", "wet"})),
    ("screen", frozenset({"pantalla", "display", "screen", "táctil", "tactil", "touch", "vidrio", "glass", "lcd", "oled", "modulo", "módulo"})),
    ("battery", frozenset({"batería", "bateria", "battery", "hinchada", "swollen", "descarga", "drain"})),
    ("charging_port", frozenset({"carga", "cargar", "cargador", "puerto", "pin", "usb", "charging", "charge", "charger", "port", "lightning"})),
    ("audio", frozenset({"audio", "sonido", "altavoz", "parlante", "auricular", "micrófono", "microfono", "speaker", "microphone", "sound"})),
    ("camera", frozenset({"cámara", "camara", "camera", "lente", "lens", "flash"})),
    ("software", frozenset({"software", "sistema", "reinicia", "actualización", "actualizacion", "bloqueado", "boot", "update", "frozen", "restarts", "logo"})),
    ("housing", frozenset({"carcasa", "tapa", "trasera", "marco", "housing", "back", "cover", "frame"})),
)


def tokenize(text: str | None) -> FrozenSet[str]:
    """Return the set of meaningful keywords in ``text``."""
    if not text:
        return frozenset()
    return frozenset(
        token
        for token in _WORD_RE.findall(text.lower())
        if len(token) >= _MIN_TOKEN_LENGTH
        and not token.isdigit()
        and token not in STOP_WORDS
    )


def classify_tokens(tokens: Iterable[str]) -> str | None:
    """Map keywords to the first component bucket they mention."""
    token_set = set(tokens)
    for component, keywords in COMPONENT_KEYWORDS:
        if token_set & keywords:
            return component
    return None


def jaccard(left: FrozenSet[str], right: FrozenSet[str]) -> float:
    if not left or not right:
        return 0.0
    union = len(left | right)
    return len(left & right) / union if union else 0.0
