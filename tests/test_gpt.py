from __future__ import annotations

from types import SimpleNamespace

import httpx
import pytest
from openai import APITimeoutError, OpenAIError

from hairflow.services import gpt
from hairflow.services.results import RecipeResult, TimelinePlan, parse_result


def _fake_openai_response(payload: str | None) -> SimpleNamespace:
    message = SimpleNamespace(content=payload)
    choice = SimpleNamespace(message=message)
    return SimpleNamespace(choices=[choice])


def _fake_client(create_fn=None, generate_fn=None):
    chat = SimpleNamespace(completions=SimpleNamespace(create=create_fn))
    images = SimpleNamespace(generate=generate_fn)
    return SimpleNamespace(chat=chat, images=images)


def test_call_gpt_json_sends_json_mode(monkeypatch):
    captured: dict = {}

    def _create(**kwargs):
        captured.update(kwargs)
        return _fake_openai_response('{"currentAnalysis": "healthy"}')

    monkeypatch.setattr(gpt, "_get_client", lambda: _fake_client(_create))
    content = [
        gpt.image_part(gpt.image_data_url(b"abc", "image/png")),
        gpt.text_part("describe"),
    ]

    data = gpt.call_gpt_json("system", content, max_tokens=2500, temperature=0.4)

    assert data == {"currentAnalysis": "healthy"}
    assert captured["response_format"] == {"type": "json_object"}
    assert captured["max_tokens"] == 2500
    assert captured["temperature"] == 0.4
    assert captured["messages"][0] == {"role": "system", "content": "system"}
    image = captured["messages"][1]["content"][0]
    assert image["image_url"]["url"] == "data:image/png;base64,YWJj"
    assert image["image_url"]["detail"] == "high"


@pytest.mark.parametrize("payload", [None, "", "not json", "[1, 2]", '"text"'])
def test_call_gpt_json_rejects_unusable_answers(monkeypatch, payload):
    monkeypatch.setattr(
        gpt,
        "_get_client",
        lambda: _fake_client(lambda **kw: _fake_openai_response(payload)),
    )
    with pytest.raises(gpt.GPTResponseError):
        gpt.call_gpt_json("system", "hello")


def test_call_gpt_json_rejects_missing_choices(monkeypatch):
    monkeypatch.setattr(
        gpt,
        "_get_client",
        lambda: _fake_client(lambda **kw: SimpleNamespace(choices=[])),
    )
    with pytest.raises(gpt.GPTResponseError):
        gpt.call_gpt_json("system", "hello")


def test_call_gpt_json_maps_timeout(monkeypatch):
    def _create(**kwargs):
        raise APITimeoutError(request=httpx.Request("POST", "https://api.openai.com"))

    monkeypatch.setattr(gpt, "_get_client", lambda: _fake_client(_create))
    with pytest.raises(TimeoutError):
        gpt.call_gpt_json("system", "hello")


def test_call_gpt_json_maps_sdk_errors(monkeypatch):
    def _create(**kwargs):
        raise OpenAIError("quota exceeded")

    monkeypatch.setattr(gpt, "_get_client", lambda: _fake_client(_create))
    with pytest.raises(RuntimeError):
        gpt.call_gpt_json("system", "hello")


def test_generate_image_returns_url(monkeypatch):
    captured: dict = {}

    def _generate(**kwargs):
        captured.update(kwargs)
        return SimpleNamespace(data=[SimpleNamespace(url="https://img.example.com/1.png")])

    monkeypatch.setattr(gpt, "_get_client", lambda: _fake_client(generate_fn=_generate))
    assert gpt.generate_image("short bob") == "https://img.example.com/1.png"
    assert captured["n"] == 1
    assert captured["size"] == "1024x1024"
    assert captured["prompt"] == "short bob"


def test_generate_image_without_data(monkeypatch):
    monkeypatch.setattr(
        gpt,
        "_get_client",
        lambda: _fake_client(generate_fn=lambda **kw: SimpleNamespace(data=[])),
    )
    assert gpt.generate_image("short bob") == ""


def test_generate_image_failure_raises(monkeypatch):
    def _generate(**kwargs):
        raise OpenAIError("content policy")

    monkeypatch.setattr(gpt, "_get_client", lambda: _fake_client(generate_fn=_generate))
    with pytest.raises(RuntimeError):
        gpt.generate_image("short bob")


def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(gpt, "_client", None)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    with pytest.raises(RuntimeError):
        gpt._get_client()


def test_parse_result_rejects_wrong_shape():
    with pytest.raises(gpt.GPTResponseError):
        parse_result(RecipeResult, {"procedure": {"type": "color"}})
    with pytest.raises(gpt.GPTResponseError):
        parse_result(
            TimelinePlan,
            {
                "currentAnalysis": "ok",
                "predictions": [],
                "revisitRecommendation": {"week": 4, "reason": "roots"},
            },
        )


def test_parse_result_accepts_numeric_strings():
    plan = parse_result(
        TimelinePlan,
        {
            "currentAnalysis": "ok",
            "predictions": [
                {"week": "2", "label": 2, "description": "d", "dallePrompt": "p"}
            ],
            "revisitRecommendation": {"week": 4, "reason": "roots"},
        },
    )
    assert plan.predictions[0].week == 2
    assert plan.predictions[0].label == "2"
