from __future__ import annotations

import threading
from contextlib import nullcontext

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse, JSONResponse

from . import __version__
from .config import EngineConfig
from .diffing import GRANULARITIES, diff
from .logging_utils import debug_log
from .ruby import render, render_diff_html, strip
from .tokens import serialize_tokens, tokenize
from .weaving import ReadingPairs, weave

INDEX_HTML = """<!DOCTYPE html>
<html lang="ja">
<head>
  <meta charset="utf-8">
  <title>tsuzuri</title>
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <style>
    :root {
      font-family: -apple-system, BlinkMacSystemFont, "Helvetica Neue", "Hiragino Sans", sans-serif;
      --ins: #d1fae5;
      --del: #ffe4e6;
    }
    body { max-width: 48rem; margin: 2rem auto; padding: 0 1rem; }
    textarea { width: 100%; min-height: 6rem; font-size: 1rem; }
    #result { line-height: 2.6rem; font-size: 1.2rem; margin-top: 1.5rem; }
    .diff-ins { background: var(--ins); border-bottom: 2px solid #34d399; font-weight: bold; }
    .diff-del { background: var(--del); color: #fda4af; text-decoration: line-through; }
  </style>
</head>
<body>
  <h1>tsuzuri</h1>
  <label>Original<textarea id="old"></textarea></label>
  <label>Corrected<textarea id="new"></textarea></label>
  <label>Readings (JSON)<textarea id="pairs">[]</textarea></label>
  <button id="run">Compare</button>
  <div id="result"></div>
  <script>
    document.getElementById("run").addEventListener("click", async () => {
      let pairs = [];
      try { pairs = JSON.parse(document.getElementById("pairs").value || "[]"); } catch (err) { pairs = []; }
      const res = await fetch("/api/review", {
        method: "POST",
        headers: {"Content-Type": "application/json"},
        body: JSON.stringify({
          old: document.getElementById("old").value,
          new: document.getElementById("new").value,
          readingPairs: pairs,
        }),
      });
      const payload = await res.json();
      document.getElementById("result").innerHTML = res.ok ? payload.html : payload.detail;
    });
  </script>
</body>
</html>
"""


def _require_payload(payload: object) -> dict[str, object]:
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid payload.")
    return payload


def _text_field(payload: dict[str, object], key: str, *, required: bool = True) -> str:
    value = payload.get(key)
    if value is None and not required:
        return ""
    if value is None:
        raise HTTPException(status_code=400, detail=f"{key} is required.")
    if not isinstance(value, str):
        raise HTTPException(status_code=400, detail=f"{key} must be a string.")
    return value


def _reading_pairs_field(payload: dict[str, object]) -> ReadingPairs:
    value = payload.get("readingPairs", payload.get("reading_pairs"))
    if value is None:
        return None
    if not isinstance(value, (list, dict)):
        raise HTTPException(status_code=400, detail="readingPairs must be a list or an object.")
    return value


def _language_field(payload: dict[str, object], default: str) -> str:
    value = payload.get("language")
    if value is None:
        return default
    if not isinstance(value, str):
        raise HTTPException(status_code=400, detail="language must be a string.")
    return value


def create_app(config: EngineConfig) -> FastAPI:
    config.validate()

    app = FastAPI(title="tsuzuri")
    app.state.config = config
    # MeCab taggers are not shared across threads.
    segmenter_lock = threading.Lock()

    def _segmenter_guard():
        return segmenter_lock if config.segmenter == "mecab" else nullcontext()

    def _weave(text: str, pairs: ReadingPairs, language: str) -> str:
        with _segmenter_guard():
            return weave(text, pairs, language=language, segmenter=config.segmenter)

    @app.get("/", response_class=HTMLResponse)
    def index() -> HTMLResponse:
        return HTMLResponse(INDEX_HTML)

    @app.get("/api/health")
    def api_health() -> JSONResponse:
        return JSONResponse({"status": "ok", "version": __version__})

    @app.post("/api/tokenize")
    def api_tokenize(payload: dict[str, object] = Body(...)) -> JSONResponse:
        payload = _require_payload(payload)
        text = _text_field(payload, "text")
        return JSONResponse({"tokens": serialize_tokens(tokenize(text))})

    @app.post("/api/diff")
    def api_diff(payload: dict[str, object] = Body(...)) -> JSONResponse:
        payload = _require_payload(payload)
        old_text = _text_field(payload, "old", required=False)
        new_text = _text_field(payload, "new", required=False)
        granularity = payload.get("granularity") or config.granularity
        if granularity not in GRANULARITIES:
            raise HTTPException(status_code=400, detail="granularity must be 'char' or 'word'.")
        result = diff(old_text, new_text, granularity=granularity)
        debug_log(f"diff: {len(old_text)} -> {len(new_text)} chars ({granularity})")
        return JSONResponse({"diff": result})

    @app.post("/api/weave")
    def api_weave(payload: dict[str, object] = Body(...)) -> JSONResponse:
        payload = _require_payload(payload)
        text = _text_field(payload, "text")
        pairs = _reading_pairs_field(payload)
        language = _language_field(payload, config.language)
        return JSONResponse({"text": _weave(text, pairs, language)})

    @app.post("/api/render")
    def api_render(payload: dict[str, object] = Body(...)) -> JSONResponse:
        payload = _require_payload(payload)
        return JSONResponse({"html": render(_text_field(payload, "text"))})

    @app.get("/api/render")
    def api_render_query(text: str = Query(...)) -> JSONResponse:
        return JSONResponse({"html": render(text)})

    @app.post("/api/strip")
    def api_strip(payload: dict[str, object] = Body(...)) -> JSONResponse:
        payload = _require_payload(payload)
        return JSONResponse({"text": strip(_text_field(payload, "text"))})

    @app.get("/api/strip")
    def api_strip_query(text: str = Query(...)) -> JSONResponse:
        return JSONResponse({"text": strip(text)})

    @app.post("/api/review")
    def api_review(payload: dict[str, object] = Body(...)) -> JSONResponse:
        payload = _require_payload(payload)
        old_text = _text_field(payload, "old", required=False)
        new_text = _text_field(payload, "new", required=False)
        pairs = _reading_pairs_field(payload)
        language = _language_field(payload, config.language)
        show_readings = payload.get("showReadings", config.show_readings)
        if not isinstance(show_readings, bool):
            raise HTTPException(status_code=400, detail="showReadings must be a boolean.")
        markup = diff(old_text, new_text, granularity=config.granularity)
        with _segmenter_guard():
            html = render_diff_html(
                markup,
                reading_pairs=pairs,
                language=language,
                segmenter=config.segmenter,
                show_readings=show_readings,
                ins_class=config.ins_class,
                del_class=config.del_class,
            )
        return JSONResponse({"diff": markup, "html": html})

    return app
