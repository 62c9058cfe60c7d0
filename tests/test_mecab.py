from __future__ import annotations

import pytest

pytest.importorskip("fugashi")

from tsuzuri.nlp import MecabSegmenter, SegmenterUnavailableError  # noqa: E402
from tsuzuri.weaving import weave  # noqa: E402


@pytest.fixture(scope="module")
def segmenter() -> MecabSegmenter:
    try:
        return MecabSegmenter()
    except SegmenterUnavailableError as exc:
        pytest.skip(str(exc))


def test_segments_cover_input(segmenter: MecabSegmenter) -> None:
    text = "今日は 学校に行きます。"
    segments = segmenter.segment(text)
    assert "".join(segment.text for segment in segments) == text
    assert any(not segment.word_like for segment in segments)


def test_weave_with_morphemes(segmenter: MecabSegmenter) -> None:
    pairs = {"食べます": "たべます"}
    assert weave("パンを食べます", pairs, segmenter=segmenter) == "パンを[食](た)べます"
