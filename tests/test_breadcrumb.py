from __future__ import annotations

from core.breadcrumb import build_breadcrumb
from core.drilldown import DrillDownConfig, DrillPathStep

PATH = (
    DrillPathStep(0, "category", "Electronics", "Category"),
    DrillPathStep(1, "subcategory", "Phones", "Subcategory"),
)


def test_top_level_has_only_home(drill_config) -> None:
    crumbs = build_breadcrumb((), drill_config)
    assert [c.label for c in crumbs.crumbs] == ["Category"]
    assert crumbs.crumbs[0].active and crumbs.crumbs[0].is_home
    assert not crumbs.visible
    assert crumbs.level_indicator is None


def test_crumbs_follow_path(drill_config) -> None:
    crumbs = build_breadcrumb(PATH, drill_config)
    assert [(c.label, c.level, c.active) for c in crumbs.crumbs] == [
        ("Category", 0, False),
        ("Electronics", 1, False),
        ("Phones", 2, True),
    ]
    assert crumbs.crumbs[0].clickable
    assert not crumbs.crumbs[-1].clickable
    assert crumbs.visible
    assert crumbs.level_indicator == "Level 2 of 3"
    assert crumbs.trail() == "Category / Electronics / Phones"


def test_home_label_falls_back() -> None:
    config = DrillDownConfig.from_dict([{"column": "category"}, {"column": "subcategory"}])
    crumbs = build_breadcrumb(PATH[:1], config)
    assert crumbs.crumbs[0].label == "All"
    assert crumbs.to_dict()["crumbs"][1] == {
        "label": "Electronics",
        "level": 1,
        "active": True,
        "clickable": False,
        "is_home": False,
    }


def test_numeric_values_render_plainly(drill_config) -> None:
    crumbs = build_breadcrumb((DrillPathStep(0, "category", 2024.0),), drill_config)
    assert crumbs.crumbs[1].label == "2024"
