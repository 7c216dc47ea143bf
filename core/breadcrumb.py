from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from core.formatting import raw_string

if TYPE_CHECKING:
    from core.drilldown import DrillDownConfig, DrillPathStep

HOME_LABEL = "All"


@dataclass(frozen=True)
class Crumb:
    label: str
    level: int
    active: bool = False
    is_home: bool = False

    @property
    def clickable(self) -> bool:
        return not self.active

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "level": self.level,
            "active": self.active,
            "clickable": self.clickable,
            "is_home": self.is_home,
        }


@dataclass(frozen=True)
class Breadcrumb:
    crumbs: List[Crumb]
    level_indicator: Optional[str] = None

    @property
    def visible(self) -> bool:
        return len(self.crumbs) > 1

    def trail(self, sep: str = " / ") -> str:
        return sep.join(c.label for c in self.crumbs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "crumbs": [c.to_dict() for c in self.crumbs],
            "level_indicator": self.level_indicator,
            "visible": self.visible,
        }


def build_breadcrumb(path: Sequence["DrillPathStep"], config: "DrillDownConfig") -> Breadcrumb:
    """Home crumb plus one crumb per path step; the last crumb is the active one.

    Clicking a step's crumb goes to the level *after* that step, so the
    crumb's ``level`` is ``step.level + 1``.
    """
    base = config.hierarchy[0].display_name if config.hierarchy else ""
    crumbs = [Crumb(label=base or HOME_LABEL, level=0, active=not path, is_home=True)]
    for index, step in enumerate(path):
        crumbs.append(
            Crumb(
                label=raw_string(step.value),
                level=step.level + 1,
                active=index == len(path) - 1,
            )
        )
    indicator = f"Level {len(path)} of {config.depth}" if path else None
    return Breadcrumb(crumbs=crumbs, level_indicator=indicator)
