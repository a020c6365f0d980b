import pytest

from dir2llm.config import MinifiedFileThresholds
from dir2llm.detection import is_minified


def _readable_script() -> str:
    lines: list[str] = []
    for i in range(25):
        lines.append(f"let total{i} = sumItems(list);")
        lines.append("")
    return "\n".join(lines).strip()


@pytest.mark.unit
def test_single_long_line_is_minified() -> None:
    assert is_minified("var a=1;" * 250, "bundle.js")


@pytest.mark.unit
def test_readable_script_is_not_minified() -> None:
    assert not is_minified(_readable_script(), "app.js")


@pytest.mark.unit
def test_source_map_comment_marks_javascript_minified() -> None:
    content = "function a(){return 1}\n" * 3 + "//# sourceMappingURL=app.js.map" + " " * 200

    assert is_minified(content, "app.js")


@pytest.mark.unit
def test_single_line_css_is_minified() -> None:
    assert is_minified(".a{color:red;margin:0}" * 50, "site.min.css")


@pytest.mark.unit
def test_formatted_css_is_not_minified() -> None:
    block = ".header {\n  color: red;\n  margin: 0;\n}\n"

    assert not is_minified((block + "\n") * 20, "site.css")


@pytest.mark.unit
def test_other_extensions_and_short_files_are_never_flagged() -> None:
    assert not is_minified("x=1;" * 500, "data.json")
    assert not is_minified("var a=1;", "tiny.js")


@pytest.mark.unit
def test_thresholds_are_configurable() -> None:
    thresholds = MinifiedFileThresholds(max_line_length=20)

    assert is_minified(_readable_script(), "app.js", thresholds)
