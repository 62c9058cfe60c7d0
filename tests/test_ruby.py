from __future__ import annotations

import pytest

from tsuzuri.ruby import render, render_diff_html, speech_text, strip


def test_render_ruby() -> None:
    assert render("[食](た)べます") == "<ruby>食<rt>た</rt></ruby>べます"
    assert render("") == ""
    assert render(None) == ""


def test_render_leaves_malformed_markup() -> None:
    assert render("[食](た") == "[食](た"


def test_strip_markup() -> None:
    assert strip("[食](た)べます") == "食べます"
    assert strip("<ruby>食<rt>た</rt></ruby>べます") == "食べます"
    assert strip("<ruby>漢<rp>(</rp><rt>かん</rt><rp>)</rp></ruby>字") == "漢字"
    assert strip(None) == ""


@pytest.mark.parametrize(
    "text",
    [
        "[食](た)べます",
        "今日は[学校](がっこう)に[行](い)きます。",
        "no markup at all",
        "[broken](markup",
        "[[a](b)](c)",
        "[a<rt>](b)",
        "[a](</rt></ruby>z)",
        "<ruby>[a](b)<rt>x</rt></ruby>",
        "<ruby>a<rt>[b](c)</rt></ruby>",
        "<ruby>x[a](b)",
        "",
    ],
)
def test_strip_render_agree(text: str) -> None:
    assert strip(render(text)) == strip(text)


def test_render_diff_html_weaves_each_run() -> None:
    markup = "<del>学校</del><ins>会社</ins>に行きます"
    pairs = [
        {"surfaceForm": "学校", "pronunciation": "がっこう"},
        {"surfaceForm": "会社", "pronunciation": "かいしゃ"},
        {"surfaceForm": "行きます", "pronunciation": "いきます"},
    ]
    html = render_diff_html(markup, reading_pairs=pairs)
    assert html == (
        '<span class="diff-del"><ruby>学校<rt>がっこう</rt></ruby></span>'
        '<span class="diff-ins"><ruby>会社<rt>かいしゃ</rt></ruby></span>'
        "に<ruby>行<rt>い</rt></ruby>きます"
    )


def test_render_diff_html_without_readings() -> None:
    markup = "[私](わたし)は<ins>[先生](せんせい)</ins>"
    html = render_diff_html(markup, show_readings=False, ins_class="add")
    assert html == '私は<span class="add">先生</span>'


def test_speech_text_drops_deletions_and_readings() -> None:
    assert speech_text("I go <del>too </del><ins>to </ins>[学校](がっこう)") == "I go to 学校"


def test_strip_does_not_rescan_its_output() -> None:
    assert strip("[[a](b)](c)") == "[a](c)"
    assert strip("[<ruby>a<rt>b</rt></ruby>](c)") == "[a](c)"


def test_angle_brackets_are_not_annotation_text() -> None:
    assert render("[a<rt>](b)") == "[a<rt>](b)"
    assert strip("[a<rt>](b)") == "[a<rt>](b)"
