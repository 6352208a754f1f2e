from dom_intent.sanitize import (
    TRUNCATION_MARKER,
    sanitize_markup,
    simplify_markup,
    truncate_markup,
)

SAMPLE = """<html>
 <head>
  <title>Shop</title>
  <style>body { color: red; }</style>
  <SCRIPT type="text/javascript">var x = "<b>";</SCRIPT>
 </head>
 <!-- tracking
 pixel -->
 <body>
  <h1>Welcome</h1>
\t<script>alert(1)</script>
 </body>
</html>"""


def test_sanitize_removes_scripts_styles_and_comments() -> None:
    out = sanitize_markup(SAMPLE)
    lowered = out.lower()
    assert "<script" not in lowered
    assert "<style" not in lowered
    assert "<!--" not in out
    assert "alert(1)" not in out
    assert "color: red" not in out
    assert "<h1>Welcome</h1>" in out


def test_sanitize_collapses_whitespace() -> None:
    assert sanitize_markup("<p>a \n\t  b</p>\n\n<p>c</p>  ") == "<p>a b</p> <p>c</p>"
    out = sanitize_markup(SAMPLE)
    assert "  " not in out
    assert "\n" not in out
    assert "\t" not in out


def test_sanitize_is_idempotent() -> None:
    for sample in (SAMPLE, "<p>plain</p>", "<!<!-- a -->-- b -->", "   "):
        once = sanitize_markup(sample)
        assert sanitize_markup(once) == once


def test_sanitize_removes_blocks_spliced_together_by_removal() -> None:
    assert sanitize_markup("<scr<script></script>ipt>x</script>") == ""
    assert sanitize_markup("<!<!-- a -->-- b -->") == ""


def test_truncate_caps_long_input() -> None:
    text = "a" * 10_500
    out = truncate_markup(text)
    assert len(out) == 10_000 + len(TRUNCATION_MARKER)
    assert out.endswith(TRUNCATION_MARKER)
    assert out[:10_000] == text[:10_000]


def test_truncate_leaves_short_input_unchanged() -> None:
    assert truncate_markup("a" * 10_000) == "a" * 10_000
    assert truncate_markup("<p>x</p>") == "<p>x</p>"


def test_simplify_sanitizes_before_truncating() -> None:
    html = "<script>" + "x" * 100 + "</script><p>" + "y" * 30 + "</p>"
    out = simplify_markup(html, max_chars=10)
    assert out == "<p>yyyyyyy" + TRUNCATION_MARKER
