from __future__ import annotations

import copy

import pytest

from agentbridge.core import BridgeError, NativeMessage, NativeRole
from agentbridge.core.adapters.normalize import (
    MessageSchema,
    is_openai_format,
    messages_to_wire,
    normalize_messages,
)
from agentbridge.core.adapters.openai import OpenAIMessage


def test_common_role_is_a_pass_through() -> None:
    assert messages_to_wire([{"role": "user", "content": "hi"}]) == [{"role": "user", "content": "hi"}]


def test_classifier_reads_lowercase_roles_as_openai() -> None:
    assert is_openai_format({"role": "assistant", "content": "x"})
    assert is_openai_format({"role": "function", "content": "x"})
    assert not is_openai_format({"role": "ROLE_USER", "content": "x"})
    assert not is_openai_format({"role": 3, "content": "x"})
    assert is_openai_format(OpenAIMessage(role="user", content="x"))
    assert not is_openai_format(NativeMessage(role=NativeRole.USER, content="x"))


def test_legacy_role_tokens_are_canonicalised() -> None:
    [message] = normalize_messages(
        [{"role": "ROLE_ASSISTANT", "content": "done", "metadata": {"trace": "t-1"}}]
    )

    assert message == NativeMessage(role=NativeRole.ASSISTANT, content="done", metadata={"trace": "t-1"})


def test_auto_mode_reads_native_mapping_with_common_role_as_openai() -> None:
    # Both schemas share the lowercase role tokens, so native metadata is lost
    # unless the caller says which schema the mapping is in.
    payload = [{"role": "user", "content": "hi", "metadata": {"trace": "t-1"}}]

    [auto] = normalize_messages(payload)
    [tagged] = normalize_messages(payload, schema=MessageSchema.NATIVE)

    assert dict(auto.metadata) == {}
    assert dict(tagged.metadata) == {"trace": "t-1"}


def test_openai_schema_tag_forces_conversion() -> None:
    payload = [{"role": "user", "content": [{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]}]

    [message] = normalize_messages(payload, schema="openai")

    assert message.content == "a\nb"


def test_openai_tag_rejects_native_only_roles() -> None:
    with pytest.raises(BridgeError):
        normalize_messages([{"role": "ROLE_USER", "content": "x"}], schema=MessageSchema.OPENAI)


def test_order_and_count_are_preserved_across_mixed_inputs() -> None:
    native = NativeMessage(role=NativeRole.SYSTEM, content="be brief")
    messages = [
        native,
        OpenAIMessage(role="user", content="question", name="ada"),
        {"role": "ROLE_TOOL", "content": "42"},
        {"role": "assistant", "content": [{"type": "image_url", "image_url": {"url": "u"}}]},
    ]

    normalized = normalize_messages(messages)

    assert [message.role for message in normalized] == [
        NativeRole.SYSTEM,
        NativeRole.USER,
        NativeRole.TOOL,
        NativeRole.ASSISTANT,
    ]
    assert [message.content for message in normalized] == ["be brief", "question", "42", ""]
    assert normalized[1].metadata == {"name": "ada"}
    assert normalized[0] == native
    assert normalized[0] is not native


def test_inputs_are_not_mutated() -> None:
    payload = [
        {"role": "user", "content": [{"type": "text", "text": "a"}], "name": "ada"},
        {"role": "ROLE_USER", "content": "b", "metadata": {"k": "v"}},
    ]
    snapshot = copy.deepcopy(payload)

    normalize_messages(payload)

    assert payload == snapshot


def test_unknown_native_role_is_kept_as_unknown() -> None:
    [message] = normalize_messages([{"role": "narrator", "content": "once upon a time"}])

    assert message.role is NativeRole.UNKNOWN
    assert message.to_wire() == {"role": "unknown", "content": "once upon a time"}


def test_non_mapping_messages_are_rejected() -> None:
    with pytest.raises(BridgeError):
        normalize_messages(["just a string"])
