# Copyright 2026 Pramod Kumar Voola
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# UTILITY REGISTRY
# -----------------------------------------------------------------------------
# Responsibility: Turn a class candidate such as ``lg:hover:px-12`` into a
# CSS rule, or into nothing when the candidate is not a known utility.
#
# Covers the subset of the Tailwind v3 vocabulary used by server-rendered
# markup: layout, spacing, sizing, typography, colour, borders, shadows,
# rings, transforms, transitions, animation and filters. Theme tokens
# (font families, colours, drop shadows) extend the built-in scales.
# -----------------------------------------------------------------------------

import re
from collections.abc import Callable
from dataclasses import dataclass

from kiln.domain.theme import ThemeConfig

Declarations = tuple[tuple[str, str], ...]

SCREENS = {"sm": 640, "md": 768, "lg": 1024, "xl": 1280, "2xl": 1536}

STATE_VARIANTS = {
    "hover": ":hover",
    "focus": ":focus",
    "focus-visible": ":focus-visible",
    "focus-within": ":focus-within",
    "active": ":active",
    "disabled": ":disabled",
    "first": ":first-child",
    "last": ":last-child",
}

GROUP_VARIANTS = {"group-hover": ".group:hover ", "group-focus": ".group:focus "}

SPACING_KEYS = frozenset(
    "0.5 1 1.5 2 2.5 3 3.5 4 5 6 7 8 9 10 11 12 14 16 20 24 28 32 36 40 44 48 "
    "52 56 60 64 72 80 96".split()
)
FRACTION_DENOMINATORS = (2, 3, 4, 5, 6, 12)

SHADES = ("50", "100", "200", "300", "400", "500", "600", "700", "800", "900", "950")

# Tailwind v3 default colours, shades 50 through 950
PALETTE = {
    family: dict(zip(SHADES, values.split()))
    for family, values in {
        "slate": "#f8fafc #f1f5f9 #e2e8f0 #cbd5e1 #94a3b8 #64748b #475569 #334155 #1e293b "
        "#0f172a #020617",
        "gray": "#f9fafb #f3f4f6 #e5e7eb #d1d5db #9ca3af #6b7280 #4b5563 #374151 #1f2937 "
        "#111827 #030712",
        "zinc": "#fafafa #f4f4f5 #e4e4e7 #d4d4d8 #a1a1aa #71717a #52525b #3f3f46 #27272a "
        "#18181b #09090b",
        "neutral": "#fafafa #f5f5f5 #e5e5e5 #d4d4d4 #a3a3a3 #737373 #525252 #404040 #262626 "
        "#171717 #0a0a0a",
        "stone": "#fafaf9 #f5f5f4 #e7e5e4 #d6d3d1 #a8a29e #78716c #57534e #44403c #292524 "
        "#1c1917 #0c0a09",
        "red": "#fef2f2 #fee2e2 #fecaca #fca5a5 #f87171 #ef4444 #dc2626 #b91c1c #991b1b "
        "#7f1d1d #450a0a",
        "orange": "#fff7ed #ffedd5 #fed7aa #fdba74 #fb923c #f97316 #ea580c #c2410c #9a3412 "
        "#7c2d12 #431407",
        "amber": "#fffbeb #fef3c7 #fde68a #fcd34d #fbbf24 #f59e0b #d97706 #b45309 #92400e "
        "#78350f #451a03",
        "yellow": "#fefce8 #fef9c3 #fef08a #fde047 #facc15 #eab308 #ca8a04 #a16207 #854d0e "
        "#713f12 #422006",
        "lime": "#f7fee7 #ecfccb #d9f99d #bef264 #a3e635 #84cc16 #65a30d #4d7c0f #3f6212 "
        "#365314 #1a2e05",
        "green": "#f0fdf4 #dcfce7 #bbf7d0 #86efac #4ade80 #22c55e #16a34a #15803d #166534 "
        "#14532d #052e16",
        "emerald": "#ecfdf5 #d1fae5 #a7f3d0 #6ee7b7 #34d399 #10b981 #059669 #047857 #065f46 "
        "#064e3b #022c22",
        "teal": "#f0fdfa #ccfbf1 #99f6e4 #5eead4 #2dd4bf #14b8a6 #0d9488 #0f766e #115e59 "
        "#134e4a #042f2e",
        "cyan": "#ecfeff #cffafe #a5f3fc #67e8f9 #22d3ee #06b6d4 #0891b2 #0e7490 #155e75 "
        "#164e63 #083344",
        "sky": "#f0f9ff #e0f2fe #bae6fd #7dd3fc #38bdf8 #0ea5e9 #0284c7 #0369a1 #075985 "
        "#0c4a6e #082f49",
        "blue": "#eff6ff #dbeafe #bfdbfe #93c5fd #60a5fa #3b82f6 #2563eb #1d4ed8 #1e40af "
        "#1e3a8a #172554",
        "indigo": "#eef2ff #e0e7ff #c7d2fe #a5b4fc #818cf8 #6366f1 #4f46e5 #4338ca #3730a3 "
        "#312e81 #1e1b4b",
        "violet": "#f5f3ff #ede9fe #ddd6fe #c4b5fd #a78bfa #8b5cf6 #7c3aed #6d28d9 #5b21b6 "
        "#4c1d95 #2e1065",
        "purple": "#faf5ff #f3e8ff #e9d5ff #d8b4fe #c084fc #a855f7 #9333ea #7e22ce #6b21a8 "
        "#581c87 #3b0764",
        "fuchsia": "#fdf4ff #fae8ff #f5d0fe #f0abfc #e879f9 #d946ef #c026d3 #a21caf #86198f "
        "#701a75 #4a044e",
        "pink": "#fdf2f8 #fce7f3 #fbcfe8 #f9a8d4 #f472b6 #ec4899 #db2777 #be185d #9d174d "
        "#831843 #500724",
        "rose": "#fff1f2 #ffe4e6 #fecdd3 #fda4af #fb7185 #f43f5e #e11d48 #be123c #9f1239 "
        "#881337 #4c0519",
    }.items()
}
SPECIAL_COLORS = {
    "white": "#fff",
    "black": "#000",
    "transparent": "transparent",
    "current": "currentColor",
    "inherit": "inherit",
}

FONT_SIZES = {
    "xs": ("0.75rem", "1rem"), "sm": ("0.875rem", "1.25rem"), "base": ("1rem", "1.5rem"),
    "lg": ("1.125rem", "1.75rem"), "xl": ("1.25rem", "1.75rem"), "2xl": ("1.5rem", "2rem"),
    "3xl": ("1.875rem", "2.25rem"), "4xl": ("2.25rem", "2.5rem"), "5xl": ("3rem", "1"),
    "6xl": ("3.75rem", "1"), "7xl": ("4.5rem", "1"), "8xl": ("6rem", "1"), "9xl": ("8rem", "1"),
}
FONT_WEIGHTS = {
    "thin": "100", "extralight": "200", "light": "300", "normal": "400", "medium": "500",
    "semibold": "600", "bold": "700", "extrabold": "800", "black": "900",
}
DEFAULT_FONTS = {
    "sans": ["ui-sans-serif", "system-ui", "sans-serif", "Apple Color Emoji",
             "Segoe UI Emoji", "Segoe UI Symbol", "Noto Color Emoji"],
    "serif": ["ui-serif", "Georgia", "Cambria", "Times New Roman", "Times", "serif"],
    "mono": ["ui-monospace", "SFMono-Regular", "Menlo", "Monaco", "Consolas",
             "Liberation Mono", "Courier New", "monospace"],
}
TRACKING = {
    "tighter": "-0.05em", "tight": "-0.025em", "normal": "0em",
    "wide": "0.025em", "wider": "0.05em", "widest": "0.1em",
}
LEADING = {
    "none": "1", "tight": "1.25", "snug": "1.375", "normal": "1.5", "relaxed": "1.625",
    "loose": "2", "3": ".75rem", "4": "1rem", "5": "1.25rem", "6": "1.5rem",
    "7": "1.75rem", "8": "2rem", "9": "2.25rem", "10": "2.5rem",
}
MAX_WIDTHS = {
    "none": "none", "xs": "20rem", "sm": "24rem", "md": "28rem", "lg": "32rem",
    "xl": "36rem", "2xl": "42rem", "3xl": "48rem", "4xl": "56rem", "5xl": "64rem",
    "6xl": "72rem", "7xl": "80rem", "full": "100%", "prose": "65ch",
}
RADII = {
    "DEFAULT": "0.25rem", "none": "0px", "sm": "0.125rem", "md": "0.375rem",
    "lg": "0.5rem", "xl": "0.75rem", "2xl": "1rem", "3xl": "1.5rem", "full": "9999px",
}
SHADOWS = {
    "DEFAULT": "0 1px 3px 0 rgb(0 0 0 / 0.1), 0 1px 2px -1px rgb(0 0 0 / 0.1)",
    "sm": "0 1px 2px 0 rgb(0 0 0 / 0.05)",
    "md": "0 4px 6px -1px rgb(0 0 0 / 0.1), 0 2px 4px -2px rgb(0 0 0 / 0.1)",
    "lg": "0 10px 15px -3px rgb(0 0 0 / 0.1), 0 4px 6px -4px rgb(0 0 0 / 0.1)",
    "xl": "0 20px 25px -5px rgb(0 0 0 / 0.1), 0 8px 10px -6px rgb(0 0 0 / 0.1)",
    "2xl": "0 25px 50px -12px rgb(0 0 0 / 0.25)",
    "inner": "inset 0 2px 4px 0 rgb(0 0 0 / 0.05)",
    "none": "0 0 #0000",
}
DROP_SHADOWS = {
    "DEFAULT": ["0 1px 2px rgb(0 0 0 / 0.1)", "0 1px 1px rgb(0 0 0 / 0.06)"],
    "sm": ["0 1px 1px rgb(0 0 0 / 0.05)"],
    "md": ["0 4px 3px rgb(0 0 0 / 0.07)", "0 2px 2px rgb(0 0 0 / 0.06)"],
    "lg": ["0 10px 8px rgb(0 0 0 / 0.04)", "0 4px 3px rgb(0 0 0 / 0.1)"],
    "xl": ["0 20px 13px rgb(0 0 0 / 0.03)", "0 8px 5px rgb(0 0 0 / 0.08)"],
    "2xl": ["0 25px 25px rgb(0 0 0 / 0.15)"],
    "none": ["0 0 #0000"],
}
BORDER_WIDTHS = {"DEFAULT": "1px", "0": "0px", "2": "2px", "4": "4px", "8": "8px"}
RING_WIDTHS = {"DEFAULT": "3px", "0": "0px", "1": "1px", "2": "2px", "4": "4px", "8": "8px"}
SCALES = ("0", "50", "75", "90", "95", "100", "105", "110", "125", "150")
ROTATIONS = ("0", "1", "2", "3", "6", "12", "45", "90", "180")
DURATIONS = ("0", "75", "100", "150", "200", "300", "500", "700", "1000")
Z_INDEX = ("0", "10", "20", "30", "40", "50")

TRANSFORM = (
    "translate(var(--tw-translate-x), var(--tw-translate-y)) rotate(var(--tw-rotate)) "
    "scaleX(var(--tw-scale-x)) scaleY(var(--tw-scale-y))"
)
SHADOW_STACK = (
    "var(--tw-ring-offset-shadow, 0 0 #0000), var(--tw-ring-shadow, 0 0 #0000), var(--tw-shadow)"
)
RING_STACK = "var(--tw-ring-offset-shadow), var(--tw-ring-shadow), var(--tw-shadow, 0 0 #0000)"
TRANSITION_TIMING = "cubic-bezier(0.4, 0, 0.2, 1)"
TRANSITION_PROPERTIES = {
    "DEFAULT": "color, background-color, border-color, text-decoration-color, fill, stroke, "
    "opacity, box-shadow, transform, filter, backdrop-filter",
    "all": "all",
    "colors": "color, background-color, border-color, text-decoration-color, fill, stroke",
    "opacity": "opacity",
    "shadow": "box-shadow",
    "transform": "transform",
}

ANIMATIONS = {
    "spin": "spin 1s linear infinite",
    "ping": "ping 1s cubic-bezier(0, 0, 0.2, 1) infinite",
    "pulse": "pulse 2s cubic-bezier(0.4, 0, 0.6, 1) infinite",
    "bounce": "bounce 1s infinite",
}
KEYFRAMES = {
    "spin": "@keyframes spin {\n  to {\n    transform: rotate(360deg);\n  }\n}",
    "ping": (
        "@keyframes ping {\n  75%, 100% {\n    transform: scale(2);\n    opacity: 0;\n  }\n}"
    ),
    "pulse": "@keyframes pulse {\n  50% {\n    opacity: .5;\n  }\n}",
    "bounce": (
        "@keyframes bounce {\n"
        "  0%, 100% {\n"
        "    transform: translateY(-25%);\n"
        "    animation-timing-function: cubic-bezier(0.8, 0, 1, 1);\n"
        "  }\n"
        "  50% {\n"
        "    transform: none;\n"
        "    animation-timing-function: cubic-bezier(0, 0, 0.2, 1);\n"
        "  }\n"
        "}"
    ),
}

# Custom properties that composed utilities (transform, shadow, ring) read
VARIABLE_DEFAULTS: Declarations = (
    ("--tw-translate-x", "0"),
    ("--tw-translate-y", "0"),
    ("--tw-rotate", "0"),
    ("--tw-scale-x", "1"),
    ("--tw-scale-y", "1"),
    ("--tw-ring-inset", " "),
    ("--tw-ring-offset-width", "0px"),
    ("--tw-ring-offset-color", "#fff"),
    ("--tw-ring-color", "rgb(59 130 246 / 0.5)"),
    ("--tw-ring-offset-shadow", "0 0 #0000"),
    ("--tw-ring-shadow", "0 0 #0000"),
    ("--tw-shadow", "0 0 #0000"),
)

# Emission order of utility families; lower sorts first
(
    ORDER_POSITION, ORDER_INSET, ORDER_Z, ORDER_GRID_COLUMN, ORDER_MARGIN, ORDER_DISPLAY,
    ORDER_ASPECT, ORDER_HEIGHT, ORDER_WIDTH, ORDER_MAX_WIDTH, ORDER_TRANSFORM,
    ORDER_ANIMATION, ORDER_CURSOR, ORDER_GRID_TEMPLATE, ORDER_FLEX_DIRECTION, ORDER_ALIGN,
    ORDER_JUSTIFY, ORDER_GAP, ORDER_SPACE, ORDER_OVERFLOW, ORDER_RADIUS, ORDER_BORDER,
    ORDER_BORDER_COLOR, ORDER_BACKGROUND, ORDER_OBJECT, ORDER_PADDING, ORDER_TEXT_ALIGN,
    ORDER_FONT_FAMILY, ORDER_FONT_SIZE, ORDER_FONT_WEIGHT, ORDER_LEADING, ORDER_TRACKING,
    ORDER_TEXT_COLOR, ORDER_TEXT_DECORATION, ORDER_OPACITY, ORDER_SHADOW, ORDER_OUTLINE,
    ORDER_RING, ORDER_RING_COLOR, ORDER_RING_OFFSET, ORDER_FILTER, ORDER_TRANSITION,
    ORDER_DURATION, ORDER_EASE,
) = range(44)

STATIC_UTILITIES: dict[str, tuple[Declarations, int]] = {
    "static": ((("position", "static"),), ORDER_POSITION),
    "fixed": ((("position", "fixed"),), ORDER_POSITION),
    "absolute": ((("position", "absolute"),), ORDER_POSITION),
    "relative": ((("position", "relative"),), ORDER_POSITION),
    "sticky": ((("position", "sticky"),), ORDER_POSITION),
    "col-span-full": ((("grid-column", "1 / -1"),), ORDER_GRID_COLUMN),
    "block": ((("display", "block"),), ORDER_DISPLAY),
    "inline-block": ((("display", "inline-block"),), ORDER_DISPLAY),
    "inline": ((("display", "inline"),), ORDER_DISPLAY),
    "flex": ((("display", "flex"),), ORDER_DISPLAY),
    "inline-flex": ((("display", "inline-flex"),), ORDER_DISPLAY),
    "grid": ((("display", "grid"),), ORDER_DISPLAY),
    "hidden": ((("display", "none"),), ORDER_DISPLAY),
    "aspect-auto": ((("aspect-ratio", "auto"),), ORDER_ASPECT),
    "aspect-square": ((("aspect-ratio", "1 / 1"),), ORDER_ASPECT),
    "aspect-video": ((("aspect-ratio", "16 / 9"),), ORDER_ASPECT),
    "cursor-pointer": ((("cursor", "pointer"),), ORDER_CURSOR),
    "cursor-default": ((("cursor", "default"),), ORDER_CURSOR),
    "cursor-wait": ((("cursor", "wait"),), ORDER_CURSOR),
    "cursor-not-allowed": ((("cursor", "not-allowed"),), ORDER_CURSOR),
    "flex-row": ((("flex-direction", "row"),), ORDER_FLEX_DIRECTION),
    "flex-col": ((("flex-direction", "column"),), ORDER_FLEX_DIRECTION),
    "flex-wrap": ((("flex-wrap", "wrap"),), ORDER_FLEX_DIRECTION),
    "items-start": ((("align-items", "flex-start"),), ORDER_ALIGN),
    "items-center": ((("align-items", "center"),), ORDER_ALIGN),
    "items-end": ((("align-items", "flex-end"),), ORDER_ALIGN),
    "items-stretch": ((("align-items", "stretch"),), ORDER_ALIGN),
    "justify-start": ((("justify-content", "flex-start"),), ORDER_JUSTIFY),
    "justify-center": ((("justify-content", "center"),), ORDER_JUSTIFY),
    "justify-end": ((("justify-content", "flex-end"),), ORDER_JUSTIFY),
    "justify-between": ((("justify-content", "space-between"),), ORDER_JUSTIFY),
    "overflow-auto": ((("overflow", "auto"),), ORDER_OVERFLOW),
    "overflow-hidden": ((("overflow", "hidden"),), ORDER_OVERFLOW),
    "overflow-visible": ((("overflow", "visible"),), ORDER_OVERFLOW),
    "overflow-scroll": ((("overflow", "scroll"),), ORDER_OVERFLOW),
    "object-contain": ((("object-fit", "contain"),), ORDER_OBJECT),
    "object-cover": ((("object-fit", "cover"),), ORDER_OBJECT),
    "object-fill": ((("object-fit", "fill"),), ORDER_OBJECT),
    "object-none": ((("object-fit", "none"),), ORDER_OBJECT),
    "text-left": ((("text-align", "left"),), ORDER_TEXT_ALIGN),
    "text-center": ((("text-align", "center"),), ORDER_TEXT_ALIGN),
    "text-right": ((("text-align", "right"),), ORDER_TEXT_ALIGN),
    "text-justify": ((("text-align", "justify"),), ORDER_TEXT_ALIGN),
    "underline": ((("text-decoration-line", "underline"),), ORDER_TEXT_DECORATION),
    "overline": ((("text-decoration-line", "overline"),), ORDER_TEXT_DECORATION),
    "line-through": ((("text-decoration-line", "line-through"),), ORDER_TEXT_DECORATION),
    "no-underline": ((("text-decoration-line", "none"),), ORDER_TEXT_DECORATION),
    "outline-none": (
        (("outline", "2px solid transparent"), ("outline-offset", "2px")),
        ORDER_OUTLINE,
    ),
    "ring-inset": ((("--tw-ring-inset", "inset"),), ORDER_RING),
    "transition-none": ((("transition-property", "none"),), ORDER_TRANSITION),
    "ease-linear": ((("transition-timing-function", "linear"),), ORDER_EASE),
    "ease-in": ((("transition-timing-function", "cubic-bezier(0.4, 0, 1, 1)"),), ORDER_EASE),
    "ease-out": ((("transition-timing-function", "cubic-bezier(0, 0, 0.2, 1)"),), ORDER_EASE),
    "ease-in-out": ((("transition-timing-function", TRANSITION_TIMING),), ORDER_EASE),
    "animate-none": ((("animation", "none"),), ORDER_ANIMATION),
}


@dataclass(frozen=True)
class UtilityMatch:
    """Declarations for a bare utility, before variants are applied."""

    declarations: Declarations
    order: int
    child: str = ""
    keyframes: str | None = None


@dataclass(frozen=True)
class Rule:
    """A fully resolved CSS rule for one class candidate."""

    candidate: str
    selector: str
    declarations: Declarations
    order: int
    media: str | None = None
    screen_rank: int = 0
    state_rank: int = 0
    keyframes: str | None = None

    @property
    def sort_key(self) -> tuple[int, int, int, str]:
        return (self.screen_rank, self.state_rank, self.order, self.candidate)

    @property
    def uses_variables(self) -> bool:
        return any("var(--tw-" in value for _, value in self.declarations)

    def render(self, indent: str = "") -> str:
        body = "".join(f"{indent}  {prop}: {value};\n" for prop, value in self.declarations)
        return f"{indent}{self.selector} {{\n{body}{indent}}}\n"


def escape_class(name: str) -> str:
    """Escape a class name for use in a CSS selector."""
    out = []
    for index, char in enumerate(name):
        if (char.isascii() and char.isalnum()) or char in "-_":
            if index == 0 and char.isdigit():
                out.append(f"\\3{char} ")
            else:
                out.append(char)
        else:
            out.append("\\" + char)
    return "".join(out)


def _spacing(value: str) -> str | None:
    if value == "px":
        return "1px"
    if value == "0":
        return "0px"
    if value not in SPACING_KEYS:
        return None
    return f"{float(value) / 4:g}rem"


def _fraction(value: str) -> str | None:
    match = re.fullmatch(r"(\d+)/(\d+)", value)
    if not match:
        return None
    numerator, denominator = int(match.group(1)), int(match.group(2))
    if denominator not in FRACTION_DENOMINATORS or not 0 < numerator < denominator:
        return None
    return f"{numerator / denominator * 100:.6f}".rstrip("0").rstrip(".") + "%"


def _arbitrary(value: str) -> str | None:
    if len(value) > 2 and value.startswith("[") and value.endswith("]"):
        return value[1:-1].replace("_", " ")
    return None


def _alpha(value: str) -> str | None:
    """Opacity scale step (0, 5 ... 100) or arbitrary value."""
    if value.isdigit() and int(value) <= 100 and int(value) % 5 == 0:
        return f"{int(value) / 100:g}"
    return _arbitrary(value)


def _with_alpha(colour: str, alpha: str) -> str | None:
    """Apply an opacity modifier to a hex colour."""
    digits = colour[1:] if colour.startswith("#") else ""
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    if len(digits) != 6 or not re.fullmatch(r"[0-9a-fA-F]{6}", digits):
        return None
    r, g, b = (int(digits[i:i + 2], 16) for i in (0, 2, 4))
    return f"rgb({r} {g} {b} / {alpha})"


def _negate(value: str) -> str | None:
    if value[0].isalpha() and not value.startswith(("calc(", "var(")):
        return None
    if value.startswith(("calc(", "var(")):
        return f"calc({value} * -1)"
    if value.startswith("-"):
        return value[1:]
    return "-" + value


def _font_stack(names: list[str]) -> str:
    return ", ".join(f'"{n}"' if " " in n and not n.startswith(('"', "'")) else n for n in names)


Handler = Callable[[str, bool], UtilityMatch | None]


class UtilityRegistry:
    """
    Resolves class candidates against the built-in scales plus the theme.

    Usage:
        registry = UtilityRegistry(theme)
        rule = registry.resolve("md:grid-cols-3")
    """

    def __init__(self, theme: ThemeConfig) -> None:
        self._theme = theme
        self._colors = {**SPECIAL_COLORS}
        for family, shades in PALETTE.items():
            for shade, value in shades.items():
                self._colors[f"{family}-{shade}"] = value
        self._colors.update(theme.flat_colors())
        self._fonts = {**DEFAULT_FONTS, **theme.font_family}
        self._drop_shadows = {**DROP_SHADOWS, **theme.drop_shadow}

        families: list[tuple[str, Handler, bool]] = [
            ("inset-", self._box(("inset",), ORDER_INSET, fraction=True), True),
            ("top-", self._box(("top",), ORDER_INSET, fraction=True), True),
            ("right-", self._box(("right",), ORDER_INSET, fraction=True), True),
            ("bottom-", self._box(("bottom",), ORDER_INSET, fraction=True), True),
            ("left-", self._box(("left",), ORDER_INSET, fraction=True), True),
            ("z-", self._z_index, True),
            ("col-span-", self._col_span, False),
            ("m-", self._box(("margin",), ORDER_MARGIN), True),
            ("mx-", self._box(("margin-left", "margin-right"), ORDER_MARGIN), True),
            ("my-", self._box(("margin-top", "margin-bottom"), ORDER_MARGIN), True),
            ("mt-", self._box(("margin-top",), ORDER_MARGIN), True),
            ("mr-", self._box(("margin-right",), ORDER_MARGIN), True),
            ("mb-", self._box(("margin-bottom",), ORDER_MARGIN), True),
            ("ml-", self._box(("margin-left",), ORDER_MARGIN), True),
            ("h-", self._size("height", "100vh"), False),
            ("w-", self._size("width", "100vw"), False),
            ("min-h-", self._min_size("min-height", "100vh"), False),
            ("min-w-", self._min_size("min-width", "100vw"), False),
            ("max-w-", self._max_width, False),
            ("translate-x-", self._translate("--tw-translate-x"), True),
            ("translate-y-", self._translate("--tw-translate-y"), True),
            ("rotate-", self._rotate, True),
            ("scale-", self._scale(("--tw-scale-x", "--tw-scale-y")), False),
            ("scale-x-", self._scale(("--tw-scale-x",)), False),
            ("scale-y-", self._scale(("--tw-scale-y",)), False),
            ("animate-", self._animate, False),
            ("grid-cols-", self._grid_cols, False),
            ("gap-", self._gap(("gap",)), False),
            ("gap-x-", self._gap(("column-gap",)), False),
            ("gap-y-", self._gap(("row-gap",)), False),
            ("space-x-", self._space("margin-left"), True),
            ("space-y-", self._space("margin-top"), True),
            ("rounded", self._rounded, False),
            ("border", self._border, False),
            ("bg-", self._color_family("background-color", ORDER_BACKGROUND), False),
            ("p-", self._box(("padding",), ORDER_PADDING), False),
            ("px-", self._box(("padding-left", "padding-right"), ORDER_PADDING), False),
            ("py-", self._box(("padding-top", "padding-bottom"), ORDER_PADDING), False),
            ("pt-", self._box(("padding-top",), ORDER_PADDING), False),
            ("pr-", self._box(("padding-right",), ORDER_PADDING), False),
            ("pb-", self._box(("padding-bottom",), ORDER_PADDING), False),
            ("pl-", self._box(("padding-left",), ORDER_PADDING), False),
            ("font-", self._font, False),
            ("text-", self._text, False),
            ("leading-", self._leading, False),
            ("tracking-", self._tracking, True),
            ("opacity-", self._opacity, False),
            ("shadow", self._shadow, False),
            ("ring-offset-", self._ring_offset, False),
            ("ring", self._ring, False),
            ("drop-shadow", self._drop_shadow, False),
            ("transition", self._transition, False),
            ("duration-", self._timing("transition-duration"), False),
            ("delay-", self._timing("transition-delay"), False),
        ]
        # Longest prefix wins when several match
        self._families = sorted(families, key=lambda f: len(f[0]), reverse=True)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, candidate: str) -> Rule | None:
        """Resolve a candidate (with variants) to a rule, or None."""
        *variants, utility = candidate.split(":")
        if not utility:
            return None

        media: str | None = None
        screen_rank = 0
        state_rank = 0
        pseudos = ""
        group = ""
        screens = list(SCREENS)

        for variant in variants:
            if variant in SCREENS:
                if media is not None:
                    return None
                media = f"(min-width: {SCREENS[variant]}px)"
                screen_rank = screens.index(variant) + 1
            elif variant in STATE_VARIANTS:
                pseudos += STATE_VARIANTS[variant]
                state_rank += 1
            elif variant in GROUP_VARIANTS:
                if group:
                    return None
                group = GROUP_VARIANTS[variant]
                state_rank += 1
            else:
                return None

        match = self.match_utility(utility)
        if match is None or not match.declarations:
            return None

        return Rule(
            candidate=candidate,
            selector=f"{group}.{escape_class(candidate)}{pseudos}{match.child}",
            declarations=match.declarations,
            order=match.order,
            media=media,
            screen_rank=screen_rank,
            state_rank=state_rank,
            keyframes=match.keyframes,
        )

    def match_utility(self, utility: str) -> UtilityMatch | None:
        """Resolve a bare utility name (no variants)."""
        negative = utility.startswith("-")
        body = utility[1:] if negative else utility
        if not body:
            return None

        if not negative and body in STATIC_UTILITIES:
            declarations, order = STATIC_UTILITIES[body]
            return UtilityMatch(declarations, order)

        for prefix, handler, negatable in self._families:
            if negative and not negatable:
                continue
            if body == prefix:
                value = "DEFAULT"
            elif prefix.endswith("-") and body.startswith(prefix):
                value = body[len(prefix):]
            elif not prefix.endswith("-") and body.startswith(prefix + "-"):
                value = body[len(prefix) + 1:]
            else:
                continue
            if not value:
                continue
            match = handler(value, negative)
            if match is not None:
                return match
        return None

    def color(self, name: str) -> str | None:
        """Colour by name, arbitrary value, or either with a ``/NN`` opacity modifier."""
        base, _, modifier = name.rpartition("/")
        if base:
            colour = self._base_color(base)
            alpha = _alpha(modifier)
            if colour and alpha:
                with_alpha = _with_alpha(colour, alpha)
                if with_alpha:
                    return with_alpha
        return self._base_color(name)

    def _base_color(self, name: str) -> str | None:
        if name in self._colors:
            return self._colors[name]
        arbitrary = _arbitrary(name)
        if arbitrary and arbitrary.startswith(("#", "rgb", "hsl")):
            return arbitrary
        return None

    # ------------------------------------------------------------------
    # Family handlers
    # ------------------------------------------------------------------

    def _box(self, props: tuple[str, ...], order: int, fraction: bool = False) -> Handler:
        def handler(value: str, negative: bool) -> UtilityMatch | None:
            resolved = _spacing(value) or _arbitrary(value)
            if resolved is None and value == "auto":
                resolved = "auto"
            if resolved is None and fraction:
                resolved = _fraction(value) or ("100%" if value == "full" else None)
            if resolved is None:
                return None
            if negative:
                resolved = _negate(resolved)
                if resolved is None:
                    return None
            return UtilityMatch(tuple((p, resolved) for p in props), order)

        return handler

    def _size(self, prop: str, screen: str) -> Handler:
        keywords = {
            "auto": "auto", "full": "100%", "screen": screen,
            "min": "min-content", "max": "max-content", "fit": "fit-content",
        }
        order = ORDER_HEIGHT if prop == "height" else ORDER_WIDTH

        def handler(value: str, negative: bool) -> UtilityMatch | None:
            resolved = (
                keywords.get(value) or _spacing(value) or _fraction(value) or _arbitrary(value)
            )
            return UtilityMatch(((prop, resolved),), order) if resolved else None

        return handler

    def _min_size(self, prop: str, screen: str) -> Handler:
        keywords = {
            "0": "0px", "full": "100%", "screen": screen,
            "min": "min-content", "max": "max-content", "fit": "fit-content",
        }
        order = ORDER_HEIGHT if prop == "min-height" else ORDER_WIDTH

        def handler(value: str, negative: bool) -> UtilityMatch | None:
            resolved = keywords.get(value) or _arbitrary(value)
            return UtilityMatch(((prop, resolved),), order) if resolved else None

        return handler

    def _max_width(self, value: str, negative: bool) -> UtilityMatch | None:
        resolved = MAX_WIDTHS.get(value) or _arbitrary(value)
        return UtilityMatch((("max-width", resolved),), ORDER_MAX_WIDTH) if resolved else None

    def _z_index(self, value: str, negative: bool) -> UtilityMatch | None:
        if value == "auto":
            return None if negative else UtilityMatch((("z-index", "auto"),), ORDER_Z)
        resolved = value if value in Z_INDEX else _arbitrary(value)
        if resolved is None:
            return None
        if negative:
            resolved = _negate(resolved)
            if resolved is None:
                return None
        return UtilityMatch((("z-index", resolved),), ORDER_Z)

    def _col_span(self, value: str, negative: bool) -> UtilityMatch | None:
        if value.isdigit() and 1 <= int(value) <= 12:
            return UtilityMatch(
                (("grid-column", f"span {value} / span {value}"),), ORDER_GRID_COLUMN
            )
        return None

    def _grid_cols(self, value: str, negative: bool) -> UtilityMatch | None:
        if value == "none":
            return UtilityMatch((("grid-template-columns", "none"),), ORDER_GRID_TEMPLATE)
        if value.isdigit() and 1 <= int(value) <= 12:
            return UtilityMatch(
                (("grid-template-columns", f"repeat({value}, minmax(0, 1fr))"),),
                ORDER_GRID_TEMPLATE,
            )
        return None

    def _translate(self, variable: str) -> Handler:
        def handler(value: str, negative: bool) -> UtilityMatch | None:
            resolved = (
                _spacing(value)
                or _fraction(value)
                or ("100%" if value == "full" else None)
                or _arbitrary(value)
            )
            if resolved is None:
                return None
            if negative:
                resolved = _negate(resolved)
                if resolved is None:
                    return None
            return UtilityMatch(((variable, resolved), ("transform", TRANSFORM)), ORDER_TRANSFORM)

        return handler

    def _rotate(self, value: str, negative: bool) -> UtilityMatch | None:
        if value not in ROTATIONS:
            return None
        degrees = f"-{value}deg" if negative and value != "0" else f"{value}deg"
        return UtilityMatch((("--tw-rotate", degrees), ("transform", TRANSFORM)), ORDER_TRANSFORM)

    def _scale(self, variables: tuple[str, ...]) -> Handler:
        def handler(value: str, negative: bool) -> UtilityMatch | None:
            if value not in SCALES:
                return None
            factor = f"{int(value) / 100:g}"
            declarations = tuple((v, factor) for v in variables) + (("transform", TRANSFORM),)
            return UtilityMatch(declarations, ORDER_TRANSFORM)

        return handler

    def _animate(self, value: str, negative: bool) -> UtilityMatch | None:
        if value not in ANIMATIONS:
            return None
        return UtilityMatch((("animation", ANIMATIONS[value]),), ORDER_ANIMATION, keyframes=value)

    def _gap(self, props: tuple[str, ...]) -> Handler:
        def handler(value: str, negative: bool) -> UtilityMatch | None:
            resolved = _spacing(value) or _arbitrary(value)
            return UtilityMatch(tuple((p, resolved) for p in props), ORDER_GAP) if resolved else None

        return handler

    def _space(self, prop: str) -> Handler:
        def handler(value: str, negative: bool) -> UtilityMatch | None:
            resolved = _spacing(value) or _arbitrary(value)
            if resolved is None:
                return None
            if negative:
                resolved = _negate(resolved)
                if resolved is None:
                    return None
            return UtilityMatch(
                ((prop, resolved),), ORDER_SPACE, child=" > :not([hidden]) ~ :not([hidden])"
            )

        return handler

    def _rounded(self, value: str, negative: bool) -> UtilityMatch | None:
        resolved = RADII.get(value) or _arbitrary(value)
        return UtilityMatch((("border-radius", resolved),), ORDER_RADIUS) if resolved else None

    def _border(self, value: str, negative: bool) -> UtilityMatch | None:
        if value in BORDER_WIDTHS:
            return UtilityMatch((("border-width", BORDER_WIDTHS[value]),), ORDER_BORDER)
        colour = self.color(value)
        if colour:
            return UtilityMatch((("border-color", colour),), ORDER_BORDER_COLOR)
        return None

    def _color_family(self, prop: str, order: int) -> Handler:
        def handler(value: str, negative: bool) -> UtilityMatch | None:
            colour = self.color(value)
            return UtilityMatch(((prop, colour),), order) if colour else None

        return handler

    def _font(self, value: str, negative: bool) -> UtilityMatch | None:
        if value in FONT_WEIGHTS:
            return UtilityMatch((("font-weight", FONT_WEIGHTS[value]),), ORDER_FONT_WEIGHT)
        if value in self._fonts:
            return UtilityMatch(
                (("font-family", _font_stack(self._fonts[value])),), ORDER_FONT_FAMILY
            )
        return None

    def _text(self, value: str, negative: bool) -> UtilityMatch | None:
        if value in FONT_SIZES:
            size, line_height = FONT_SIZES[value]
            return UtilityMatch(
                (("font-size", size), ("line-height", line_height)), ORDER_FONT_SIZE
            )
        colour = self.color(value)
        if colour:
            return UtilityMatch((("color", colour),), ORDER_TEXT_COLOR)
        arbitrary = _arbitrary(value)
        if arbitrary:
            return UtilityMatch((("font-size", arbitrary),), ORDER_FONT_SIZE)
        return None

    def _leading(self, value: str, negative: bool) -> UtilityMatch | None:
        resolved = LEADING.get(value) or _arbitrary(value)
        return UtilityMatch((("line-height", resolved),), ORDER_LEADING) if resolved else None

    def _tracking(self, value: str, negative: bool) -> UtilityMatch | None:
        resolved = TRACKING.get(value) or _arbitrary(value)
        if resolved is None:
            return None
        if negative:
            resolved = _negate(resolved)
            if resolved is None:
                return None
        return UtilityMatch((("letter-spacing", resolved),), ORDER_TRACKING)

    def _opacity(self, value: str, negative: bool) -> UtilityMatch | None:
        resolved = _alpha(value)
        return UtilityMatch((("opacity", resolved),), ORDER_OPACITY) if resolved else None

    def _shadow(self, value: str, negative: bool) -> UtilityMatch | None:
        if value not in SHADOWS:
            return None
        return UtilityMatch(
            (("--tw-shadow", SHADOWS[value]), ("box-shadow", SHADOW_STACK)), ORDER_SHADOW
        )

    def _ring(self, value: str, negative: bool) -> UtilityMatch | None:
        if value in RING_WIDTHS:
            width = RING_WIDTHS[value]
            return UtilityMatch(
                (
                    (
                        "--tw-ring-offset-shadow",
                        "var(--tw-ring-inset) 0 0 0 var(--tw-ring-offset-width) "
                        "var(--tw-ring-offset-color)",
                    ),
                    (
                        "--tw-ring-shadow",
                        f"var(--tw-ring-inset) 0 0 0 calc({width} + var(--tw-ring-offset-width)) "
                        "var(--tw-ring-color)",
                    ),
                    ("box-shadow", RING_STACK),
                ),
                ORDER_RING,
            )
        colour = self.color(value)
        if colour:
            return UtilityMatch((("--tw-ring-color", colour),), ORDER_RING_COLOR)
        return None

    def _ring_offset(self, value: str, negative: bool) -> UtilityMatch | None:
        if value in RING_WIDTHS and value != "DEFAULT":
            return UtilityMatch(
                (("--tw-ring-offset-width", RING_WIDTHS[value]),), ORDER_RING_OFFSET
            )
        colour = self.color(value)
        if colour:
            return UtilityMatch((("--tw-ring-offset-color", colour),), ORDER_RING_OFFSET)
        return None

    def _drop_shadow(self, value: str, negative: bool) -> UtilityMatch | None:
        shadows = self._drop_shadows.get(value)
        if not shadows:
            return None
        filters = " ".join(f"drop-shadow({s})" for s in shadows)
        return UtilityMatch((("filter", filters),), ORDER_FILTER)

    def _transition(self, value: str, negative: bool) -> UtilityMatch | None:
        if value not in TRANSITION_PROPERTIES:
            return None
        return UtilityMatch(
            (
                ("transition-property", TRANSITION_PROPERTIES[value]),
                ("transition-timing-function", TRANSITION_TIMING),
                ("transition-duration", "150ms"),
            ),
            ORDER_TRANSITION,
        )

    def _timing(self, prop: str) -> Handler:
        def handler(value: str, negative: bool) -> UtilityMatch | None:
            resolved = f"{value}ms" if value in DURATIONS else _arbitrary(value)
            return UtilityMatch(((prop, resolved),), ORDER_DURATION) if resolved else None

        return handler
