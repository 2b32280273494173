"""Static defaults shared by config and services.

Nothing here reads the environment, so importing it never freezes config
before ``.env`` is loaded.
"""

from __future__ import annotations

DEFAULT_DRAW_URL_TEMPLATE = "https://www.fotomac.com.tr/sayisal-loto-sonuclari/{draw_id}"

# Known result layouts, most specific first.
DEFAULT_PARSER_SELECTORS: tuple[str, ...] = (
    ".lottery-wins-numbers span",
    ".lottery-wins-numbers li",
    ".sayisal-loto-numbers li",
    ".draw-result .numbers .number",
    "ul.numbers li",
    ".ball",
)

DEFAULT_ID_PATTERN = r"sayisal-loto-sonuclari/(\d+)"

# Dropdowns whose bare numeric option values are draw ids.
DEFAULT_OPTION_SELECTOR = (
    "select[name*=hafta] option[value], "
    "select[name*=week] option[value], "
    "select[name*=draw] option[value], "
    "select[id*=hafta] option[value], "
    "select[id*=week] option[value], "
    "select[id*=draw] option[value]"
)
