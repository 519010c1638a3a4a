from agent.agent import build_payload, to_lc_messages
from agent.core.models import Turn
from config.settings import Settings


def _transcript(n):
    return [Turn(role="user" if i % 2 == 0 else "assistant", content=f"turn {i}") for i in range(n)]


def test_full_transcript_forwarded_by_default():
    messages = to_lc_messages(_transcript(25))
    assert len(messages) == 25
    assert messages[0].content == "turn 0"


def test_history_cap_is_opt_in(monkeypatch):
    monkeypatch.setattr(Settings, "history_turns", 4)
    messages = to_lc_messages(_transcript(25))
    assert [m.content for m in messages] == ["turn 21", "turn 22", "turn 23", "turn 24"]


def test_empty_turns_skipped():
    messages = to_lc_messages([Turn(role="user", content=""), Turn(role="assistant", content="hi")], limit=0)
    assert [m.type for m in messages] == ["ai"]


def test_payload_omits_empty_history():
    payload = build_payload("cafes", "directive", [])
    assert payload == {"input": "cafes", "directive": "directive"}
