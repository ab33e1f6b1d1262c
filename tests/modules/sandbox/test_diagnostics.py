"""Tests for :mod:`tsmeta.modules.sandbox.diagnostics`."""

from __future__ import annotations

from textwrap import dedent

from tsmeta.modules.sandbox import Diagnostic, parse_tsc_output

OUTPUT = dedent(
    """\
    src/main.ts(3,7): error TS2322: Type 'string' is not assignable to type 'number'.
    src/util.ts(10,1): error TS2345: Argument of type 'X' is not assignable.
      Property 'id' is missing in type 'X'.
    error TS18003: No inputs were found in config file.

    Found 3 errors.
    """
)


def test_parse_tsc_output_reads_located_messages() -> None:
    messages = parse_tsc_output(OUTPUT)

    assert [message.path for message in messages] == ["src/main.ts", "src/util.ts", None]
    first = messages[0]
    assert first.code == "TS2322"
    assert first.severity == "error"
    assert first.diagnostic == Diagnostic(
        message="Type 'string' is not assignable to type 'number'.",
        line=3,
        column=7,
    )


def test_continuation_lines_fold_into_previous_message() -> None:
    folded = parse_tsc_output(OUTPUT)[1].diagnostic

    assert folded.message == (
        "Argument of type 'X' is not assignable.\n"
        "Property 'id' is missing in type 'X'."
    )
    assert folded.line == 10


def test_project_level_message_is_session_wide() -> None:
    message = parse_tsc_output(OUTPUT)[2]

    assert message.code == "TS18003"
    assert message.diagnostic.is_session_wide
    assert message.diagnostic.to_dict() == {
        "message": "No inputs were found in config file."
    }


def test_diagnostic_to_dict_includes_location() -> None:
    diagnostic = Diagnostic(message="boom", line=2, column=5)

    assert diagnostic.to_dict() == {"location": {"line": 2, "column": 5}, "message": "boom"}
    assert not diagnostic.is_session_wide


def test_unrecognized_output_is_ignored() -> None:
    assert parse_tsc_output("Version 5.4.5\n\n") == []
