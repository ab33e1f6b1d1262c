"""Tests for :mod:`tsmeta.modules.metadata.stylesheet`."""

from __future__ import annotations

from textwrap import dedent

import pytest

from tsmeta.modules.metadata.stylesheet import (
    empty_stylesheet,
    normalize_media_query,
    split_selectors,
)


def test_normalize_media_query_collapses_spacing() -> None:
    assert normalize_media_query("screen and ( max-width : 600px )") == (
        "screen and (max-width:600px)"
    )


def test_split_selectors_respects_parentheses() -> None:
    assert split_selectors(".a,\n .b:is(.c, .d) , p") == [".a", ".b:is(.c, .d)", "p"]


def test_empty_stylesheet_shape() -> None:
    sheet = empty_stylesheet()

    assert sheet["classes"] == {}
    assert sheet["exports"] == []
    assert set(sheet) >= {"selectors", "variables", "mediaQueries", "keyframes"}


# ----------------------------------------------------------------------
# Parser-backed extraction
# ----------------------------------------------------------------------


@pytest.fixture
def extractor():
    pytest.importorskip("tree_sitter_languages")
    from tsmeta.modules.metadata import StylesheetExtractor

    return StylesheetExtractor()


def test_base_and_pseudo_properties_are_kept_apart(extractor) -> None:
    sheet = extractor.extract_style_sources(
        {
            "app.css": dedent(
                """
                .container { display: flex; color: red !important; }
                .container:hover { transform: scale(1.05); }
                """
            )
        }
    )

    container = sheet["classes"]["container"]
    assert container["selector"] == ".container"
    assert container["properties"] == {"display": "flex", "color": "red"}
    assert container["pseudoClasses"] == {"hover": {"transform": "scale(1.05)"}}
    assert sheet["pseudoClasses"]["hover"]["properties"] == {"transform": "scale(1.05)"}
    assert sheet["selectors"] == [".container", ".container:hover"]


def test_media_overlays_do_not_touch_base(extractor) -> None:
    sheet = extractor.extract_style_sources(
        {
            "layout.css": dedent(
                """
                .grid { gap: 16px; }
                @media (max-width: 600px) {
                  .grid { gap: 4px; }
                }
                """
            )
        }
    )

    grid = sheet["classes"]["grid"]
    assert grid["properties"] == {"gap": "16px"}
    assert grid["mediaQueries"] == {"(max-width:600px)": {"gap": "4px"}}
    query = sheet["mediaQueries"]["(max-width:600px)"]
    assert query["classes"] == {"grid": {"gap": "4px"}}
    assert len(query["rules"]) == 1


def test_custom_properties_track_usage(extractor) -> None:
    sheet = extractor.extract_style_sources(
        {
            "vars.css": dedent(
                """
                :root { --gap: 8px; }
                .card { margin: calc(var(--gap) + var(--gap)); }
                """
            )
        }
    )

    gap = sheet["variables"]["--gap"]
    assert gap["value"] == "8px"
    assert len(gap["usedIn"]) == 2
    assert gap["usedIn"][0]["selector"] == [".card"]
    assert gap["usedIn"][0]["property"] == "margin"


def test_keyframes_collect_frames(extractor) -> None:
    sheet = extractor.extract_style_sources(
        {
            "anim.css": dedent(
                """
                @keyframes fade {
                  from { opacity: 0; }
                  to { opacity: 1; }
                }
                """
            )
        }
    )

    assert sheet["keyframes"]["fade"]["frames"] == {
        "from": {"opacity": "0"},
        "to": {"opacity": "1"},
    }


def test_css_modules_export_their_classes(extractor) -> None:
    sheet = extractor.extract_style_sources(
        {
            "Button.module.css": ".primary { color: red; }\n.primary .icon { width: 1em; }\n",
            "global.css": ".page { margin: 0; }\n",
        }
    )

    assert sheet["exports"] == ["primary", "icon"]
    assert "page" in sheet["classes"]
    assert extractor.is_css_module("theme.MODULE.scss")
