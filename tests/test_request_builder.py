"""Tests for request building and wire serialization."""

from __future__ import annotations

import json

import pytest

from roottensor.llm.request_builder import build_request
from roottensor.llm.types import CallOptions, ChatRequest, Message, Role

DEFAULT_MODEL = "deepseek-r1:8b"

MSGS = [
    Message(role=Role.USER, content="Hello"),
    Message(role=Role.ASSISTANT, content="Hi"),
]


class TestBuildRequest:
    @pytest.mark.parametrize(
        ("opts", "want_model", "want_stream", "want_options"),
        [
            (None, DEFAULT_MODEL, False, None),
            (CallOptions(), DEFAULT_MODEL, False, None),
            (CallOptions(model="llama3"), "llama3", False, None),
            (CallOptions(temperature=0.7), DEFAULT_MODEL, False, {"temperature": 0.7}),
            (CallOptions(max_tokens=512), DEFAULT_MODEL, False, {"num_predict": 512}),
            (CallOptions(stream=True), DEFAULT_MODEL, True, None),
            (
                CallOptions(model="llama3", temperature=0.9, max_tokens=1024, stream=True),
                "llama3", True, {"temperature": 0.9, "num_predict": 1024},
            ),
        ],
    )
    def test_option_merging(self, opts, want_model, want_stream, want_options):
        req = build_request(MSGS, opts, DEFAULT_MODEL)

        assert req.model == want_model
        assert req.stream is want_stream
        assert req.options == want_options
        assert req.messages == MSGS

    def test_temperature_only_has_no_num_predict(self):
        req = build_request(MSGS, CallOptions(temperature=0.7), DEFAULT_MODEL)
        assert req.options == pytest.approx({"temperature": 0.7})
        assert "num_predict" not in req.options

    def test_negative_max_tokens_ignored(self):
        req = build_request(MSGS, CallOptions(max_tokens=-1), DEFAULT_MODEL)
        assert req.options is None

    def test_empty_messages(self):
        req = build_request([], None, DEFAULT_MODEL)
        assert req.messages == []

    def test_is_pure(self):
        opts = CallOptions(model="m", temperature=0.5)
        assert build_request(MSGS, opts, DEFAULT_MODEL) == build_request(MSGS, opts, DEFAULT_MODEL)

    def test_messages_copied_not_aliased(self):
        msgs = [Message(role=Role.USER, content="a"), Message(role=Role.USER, content="b")]
        req = build_request(msgs, None, DEFAULT_MODEL)

        msgs[0].content = "changed"
        msgs.append(Message(role=Role.USER, content="c"))

        assert [m.content for m in req.messages] == ["a", "b"]

    def test_order_and_content_preserved(self):
        msgs = [
            Message(role=Role.SYSTEM, content="be brief"),
            Message(role=Role.USER, content="same"),
            Message(role=Role.USER, content="same"),
            Message(role=Role.ASSISTANT, content="  spaced  "),
        ]
        req = build_request(msgs, None, DEFAULT_MODEL)
        assert [(m.role, m.content) for m in req.messages] == [(m.role, m.content) for m in msgs]


class TestChatRequestSerialization:
    def test_options_absent_when_none(self):
        req = build_request(MSGS, CallOptions(), DEFAULT_MODEL)
        payload = json.loads(req.to_json())
        assert "options" not in payload

    def test_options_absent_when_empty(self):
        req = ChatRequest(model="m", options={})
        assert "options" not in req.to_dict()

    def test_roles_serialize_as_strings(self):
        payload = json.loads(build_request(MSGS, None, DEFAULT_MODEL).to_json())
        assert payload["messages"] == [
            {"role": "user", "content": "Hello"},
            {"role": "assistant", "content": "Hi"},
        ]

    def test_plain_string_role(self):
        assert Message(role="user", content="x").to_dict() == {"role": "user", "content": "x"}

    def test_stream_override(self):
        req = ChatRequest(model="m", stream=False)
        assert json.loads(req.to_json(stream=True))["stream"] is True
        assert req.stream is False

    def test_nan_rejected(self):
        req = ChatRequest(model="m", options={"temperature": float("nan")})
        with pytest.raises(ValueError):
            req.to_json()

    def test_unserializable_rejected(self):
        req = ChatRequest(model="m", options={"bad": object()})
        with pytest.raises(TypeError):
            req.to_json()
