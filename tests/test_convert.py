"""Message format conversion characterization tests."""

from __future__ import annotations

import json

import pytest

from toolshim.convert import (
    part_to_text,
    parts_to_text,
    render_function_call,
    system_instruction_text,
    to_backend_messages,
)
from toolshim.providers.models import BackendMessage
from toolshim.types import Blob, Content, FileData, FunctionCall, Part

pytestmark = pytest.mark.contract


def test_text_parts_concatenate_verbatim_in_order() -> None:
    assert parts_to_text([Part(text="a"), Part(text=" b"), Part(text="\nc")]) == "a b\nc"


def test_function_call_is_rendered_as_fenced_tool_call_json() -> None:
    rendered = render_function_call(
        FunctionCall(name="list_files", args={"dir": ".", "depth": {"max": 2}})
    )

    assert rendered.startswith("\n```json\n")
    assert rendered.endswith("\n```\n")
    body = rendered.removeprefix("\n```json\n").removesuffix("\n```\n")
    assert json.loads(body) == {
        "tool_call": {"name": "list_files", "arguments": {"dir": ".", "depth": {"max": 2}}}
    }


def test_function_response_prefers_llm_content() -> None:
    part = Part.from_function_response(
        "read_file", {"llmContent": "Testing 123", "returnDisplay": "ignored"}
    )
    assert part_to_text(part) == '\nTool "read_file" returned:\nTesting 123\n'


def test_function_response_without_llm_content_is_json() -> None:
    part = Part.from_function_response("list_files", {"files": ["a.txt"]})
    assert part_to_text(part) == (
        '\nTool "list_files" returned:\n{"files": ["a.txt"]}\n'
    )


def test_function_response_scalar_uses_string_form() -> None:
    part = Part.from_function_response("count", 3)
    assert part_to_text(part) == '\nTool "count" returned:\n3\n'


def test_opaque_data_is_referenced_not_embedded() -> None:
    inline = Part(inline_data=Blob(mime_type="image/png", data=b"\x89PNG"))
    file = Part(file_data=FileData(file_uri="gs://bucket/report.pdf"))

    assert part_to_text(inline) == "[Inline data: image/png]"
    assert part_to_text(file) == "[File: gs://bucket/report.pdf]"


def test_system_message_leads_and_roles_are_mapped() -> None:
    contents = [
        Content(role="user", parts=(Part(text="hi"),)),
        Content(role="model", parts=(Part(text="hello"),)),
    ]

    messages = to_backend_messages(contents, "You are terse.")

    assert messages == [
        BackendMessage(role="system", content="You are terse."),
        BackendMessage(role="user", content="hi"),
        BackendMessage(role="assistant", content="hello"),
    ]


def test_empty_system_text_is_omitted() -> None:
    messages = to_backend_messages("hi", "")
    assert [m.role for m in messages] == ["user"]


def test_turns_that_flatten_to_nothing_are_dropped() -> None:
    contents = [
        Content(role="user", parts=(Part(text="hi"),)),
        Content(role="model", parts=()),
        Content(role="user", parts=(Part(text=""),)),
    ]
    assert len(to_backend_messages(contents)) == 1


def test_tool_history_round_trips_into_transcript() -> None:
    contents = [
        Content(role="user", parts=(Part(text="what's here?"),)),
        Content(role="model", parts=(Part.from_function_call("list_files", {"dir": "."}),)),
        Content(
            role="user",
            parts=(Part.from_function_response("list_files", {"llmContent": "a.txt"}),),
        ),
    ]

    messages = to_backend_messages(contents, "sys")

    assert [m.role for m in messages] == ["system", "user", "assistant", "user"]
    assert '"tool_call"' in messages[2].content
    assert 'Tool "list_files" returned:\na.txt' in messages[3].content


def test_system_instruction_text_flattens_every_shape() -> None:
    assert system_instruction_text(None) == ""
    assert system_instruction_text("plain") == "plain"
    assert system_instruction_text(Part(text="part")) == "part"
    assert system_instruction_text(["a", Part(text="b")]) == "ab"
    assert (
        system_instruction_text(Content(role="user", parts=(Part(text="c"),))) == "c"
    )
