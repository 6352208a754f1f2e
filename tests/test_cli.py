import json
from pathlib import Path

import pytest

from dom_intent import cli
from dom_intent.models import AnalysisReport, AnalysisResult, ElementSample, KeyElement, ValidatedElement


def test_bare_url_defaults_to_analyze() -> None:
    args = cli.parse_args(["https://example.com"])
    assert args.command == "analyze"
    assert args.urls == ["https://example.com"]
    assert args.watch is False


def test_availability_command() -> None:
    args = cli.parse_args(["availability", "--model", "org/model"])
    assert args.command == "availability"
    assert args.model == "org/model"


def test_analyze_requires_a_target() -> None:
    with pytest.raises(SystemExit):
        cli.parse_args(["analyze"])


def test_watch_takes_a_single_url() -> None:
    with pytest.raises(SystemExit):
        cli.parse_args(["analyze", "--watch", "https://a.example", "https://b.example"])


def test_build_config_maps_flags() -> None:
    args = cli.parse_args(
        ["analyze", "https://a.example", "--headful", "--max-html-chars", "500", "--wait", "0"]
    )
    config = cli.build_config(args)
    assert config.headless is False
    assert config.max_html_chars == 500
    assert config.wait_after_load == 0.0


def test_html_file_run_writes_json_report(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    page = tmp_path / "page.html"
    page.write_text("<h1>Title</h1>", encoding="utf-8")
    output = tmp_path / "out" / "report.json"

    element = KeyElement(selector="h1", element_type="heading", purpose="title", importance="高")
    report = AnalysisReport(
        analysis=AnalysisResult(key_elements=[element], page_type="article", primary_intent="read"),
        validated_elements=[
            ValidatedElement(
                selector="h1",
                element_type="heading",
                purpose="title",
                importance="高",
                found=True,
                count=1,
                actual_elements=[ElementSample(tag_name="H1", text_content="Title")],
            )
        ],
        url=page.as_uri(),
    )

    async def _fake_analyze_file(path, config, analyzer):
        assert path == page
        return report

    monkeypatch.setattr(cli, "analyze_file", _fake_analyze_file)
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["analyze", "--html", str(page), "--json-output", str(output)])

    assert excinfo.value.code == 0
    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload[0]["validatedElements"][0]["actualElements"][0]["tagName"] == "H1"
    assert payload[0]["analysis"]["keyElements"][0]["importance"] == "高"
