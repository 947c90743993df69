from shader_analysis.section_extract import (
    END_MARKER,
    VERTEX_MARKER,
    extract_fragment_shader,
    extract_section,
    extract_vertex_shader,
    split_lines,
)


def test_extract_simple_block_drops_markers_and_blank_lines():
    text = "header\n#ifdef VERTEX\n\n#version 300 es\n   \nvoid main() {}\n\n#endif\ntrailer\n"
    assert extract_section(text, VERTEX_MARKER, END_MARKER) == "#version 300 es\nvoid main() {}"


def test_extract_keeps_nested_directive_pair():
    text = "\n".join(
        [
            "#ifdef VERTEX",
            "void main()",
            "{",
            "#ifdef UNITY_ADRENO_ES3",
            "    x = 1;",
            "#endif",
            "}",
            "#endif",
            "#ifdef FRAGMENT",
            "frag",
            "#endif",
        ]
    )
    assert extract_vertex_shader(text) == "\n".join(
        ["void main()", "{", "#ifdef UNITY_ADRENO_ES3", "    x = 1;", "#endif", "}"]
    )
    assert extract_fragment_shader(text) == "frag"


def test_extract_counts_if_and_ifndef_as_openers():
    text = "#ifdef VERTEX\n#if A\n#ifndef B\nbody\n#endif\n#endif\ntail\n#endif\n"
    assert extract_vertex_shader(text) == "#if A\n#ifndef B\nbody\n#endif\n#endif\ntail"


def test_extract_returns_only_first_region():
    text = "#ifdef VERTEX\nfirst\n#endif\n#ifdef VERTEX\nsecond\n#endif\n"
    assert extract_vertex_shader(text) == "first"


def test_extract_preserves_indentation_and_matches_trimmed_markers():
    text = "   #ifdef VERTEX  \n    indented line\n  #endif\n"
    assert extract_vertex_shader(text) == "    indented line"


def test_extract_handles_crlf_and_cr_newlines():
    text = "#ifdef VERTEX\r\nline one\rline two\r\n#endif\r\n"
    assert extract_vertex_shader(text) == "line one\nline two"


def test_extract_missing_marker_gives_empty():
    assert extract_vertex_shader("#ifdef FRAGMENT\nx\n#endif") == ""


def test_extract_empty_inputs_give_empty():
    assert extract_section("", VERTEX_MARKER, END_MARKER) == ""
    assert extract_section(None, VERTEX_MARKER, END_MARKER) == ""
    assert extract_section("#ifdef VERTEX\nx\n#endif", "", END_MARKER) == ""
    assert extract_section("#ifdef VERTEX\nx\n#endif", VERTEX_MARKER, "") == ""


def test_extract_unbalanced_region_does_not_raise():
    # No closing #endif for the nested block: capture runs to end-of-text and
    # the last captured line is trimmed as if it were the closer.
    text = "#ifdef VERTEX\na\n#ifdef X\nb\n#endif\nc"
    assert extract_vertex_shader(text) == "a\n#ifdef X\nb\n#endif"


def test_extract_lone_start_marker_is_returned_untrimmed():
    assert extract_vertex_shader("#ifdef VERTEX") == "#ifdef VERTEX"


def test_split_lines_drops_empty_entries():
    assert split_lines("a\r\n\r\nb\n\nc\r") == ["a", "b", "c"]
    assert split_lines("") == []
