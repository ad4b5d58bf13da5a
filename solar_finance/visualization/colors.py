"""
Color schemes for light and dark mode financial charts.

Two layers:
    1. Palette: a handful of base colors per theme.
    2. ColorScheme: semantic names used by the plots (cost, savings, pv,
       battery, champion, ...), so chart code references meaning, not hue.

Theme selection follows the Plotly template name: templates containing
'dark' get the dark scheme.
"""

from dataclasses import asdict, dataclass
from typing import Dict


@dataclass(frozen=True)
class ColorScheme:
    # Economic
    cost_color: str
    savings_color: str
    cumulative_color: str

    # System kinds
    solar_color: str
    battery_color: str
    hybrid_color: str

    # Indicators
    champion_color: str
    break_even_color: str
    neutral_color: str

    def kind_color(self, kind: str) -> str:
        """Color for a SystemDesign.kind."""
        return {
            'solar': self.solar_color,
            'battery': self.battery_color,
            'hybrid': self.hybrid_color,
        }.get(kind, self.neutral_color)

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


LIGHT_MODE = ColorScheme(
    cost_color='rgb(220, 53, 69)',
    savings_color='rgb(40, 167, 69)',
    cumulative_color='rgb(0, 123, 255)',
    solar_color='rgb(255, 193, 7)',
    battery_color='rgb(13, 71, 161)',
    hybrid_color='rgb(27, 128, 45)',
    champion_color='rgb(183, 28, 28)',
    break_even_color='rgb(108, 117, 125)',
    neutral_color='rgb(206, 212, 218)',
)

DARK_MODE = ColorScheme(
    cost_color='rgb(255, 107, 107)',
    savings_color='rgb(72, 219, 127)',
    cumulative_color='rgb(99, 179, 255)',
    solar_color='rgb(255, 214, 102)',
    battery_color='rgb(130, 200, 255)',
    hybrid_color='rgb(102, 236, 152)',
    champion_color='rgb(255, 138, 138)',
    break_even_color='rgb(173, 181, 189)',
    neutral_color='rgb(73, 80, 87)',
)


def get_color_scheme(template: str = 'plotly_white') -> ColorScheme:
    """
    Color scheme matching a Plotly template.

    Example:
        >>> get_color_scheme('plotly_dark').cost_color
        'rgb(255, 107, 107)'
    """
    if 'dark' in template.lower():
        return DARK_MODE
    return LIGHT_MODE
