"""
Oracle Client Tests.

Vote decoding plus the chat-completions gateway over httpx.MockTransport.
"""

import json

import httpx
import pytest

from conftest import vote_json
from skysniper.exceptions import OracleCallError
from skysniper.services.oracle import ChatCompletionsOracle, parse_vote, strip_code_fences


class TestParseVote:

    def test_valid_vote(self):
        result = parse_vote(vote_json(prediction="2.35x", confidence="High"), temperature=0.3, order=0)
        assert result.ok
        assert result.error is None
        assert result.vote.prediction == "2.35x"
        assert result.vote.confidence == "High"
        assert result.vote.temperature == 0.3
        assert result.vote.prediction_value == pytest.approx(2.35)

    def test_code_fences_stripped(self):
        raw = "```json\n" + vote_json() + "\n```"
        assert parse_vote(raw).ok

    def test_strip_code_fences_plain(self):
        assert strip_code_fences('```{"a": 1}```') == '{"a": 1}'

    def test_invalid_json(self):
        result = parse_vote("The next round will crash at 2x")
        assert not result.ok
        assert result.error.startswith("invalid JSON")

    def test_non_object(self):
        result = parse_vote(json.dumps([json.loads(vote_json())]))
        assert result.error == "expected JSON object, got list"

    def test_extra_field_rejected(self):
        result = parse_vote(vote_json(bonus="surprise"))
        assert not result.ok
        assert "bonus" in result.error

    def test_missing_field_rejected(self):
        body = json.loads(vote_json())
        del body["entry_timing"]
        result = parse_vote(json.dumps(body))
        assert result.error == "schema mismatch: entry_timing"

    def test_unknown_confidence_label(self):
        assert not parse_vote(vote_json(confidence="Certain")).ok

    @pytest.mark.parametrize("risk", [0, 11])
    def test_risk_out_of_range(self, risk):
        assert not parse_vote(vote_json(risk_level=risk)).ok

    @pytest.mark.parametrize("prediction", ["soon", "0.50x", "nanx", "infx"])
    def test_bad_prediction(self, prediction):
        assert not parse_vote(vote_json(prediction=prediction)).ok

    def test_empty_text(self):
        assert not parse_vote("").ok


def _completion(content: str) -> dict:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestChatCompletionsOracle:

    @pytest.mark.asyncio
    async def test_returns_message_content(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=_completion("hello"))

        oracle = ChatCompletionsOracle(
            api_key="k-123",
            base_url="https://llm.example.test/v1/",
            model="test-model",
            max_tokens=50,
            top_p=0.9,
            transport=httpx.MockTransport(handler),
        )
        assert await oracle.complete("prompt text", 0.7) == "hello"
        assert seen["url"] == "https://llm.example.test/v1/chat/completions"
        assert seen["auth"] == "Bearer k-123"
        assert seen["body"]["model"] == "test-model"
        assert seen["body"]["temperature"] == 0.7
        assert seen["body"]["max_tokens"] == 50
        assert seen["body"]["messages"] == [{"role": "user", "content": "prompt text"}]

    @pytest.mark.asyncio
    async def test_non_200_raises(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(500, text="boom"))
        oracle = ChatCompletionsOracle(api_key="k", transport=transport)
        with pytest.raises(OracleCallError) as exc:
            await oracle.complete("p", 0.3)
        assert exc.value.message == "Oracle API error: 500"
        assert exc.value.temperature == 0.3

    @pytest.mark.asyncio
    async def test_malformed_envelope_raises(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={"choices": []}))
        oracle = ChatCompletionsOracle(api_key="k", transport=transport)
        with pytest.raises(OracleCallError):
            await oracle.complete("p", 0.9)

    @pytest.mark.asyncio
    async def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        oracle = ChatCompletionsOracle(api_key="k", transport=httpx.MockTransport(handler))
        with pytest.raises(OracleCallError):
            await oracle.complete("p", 0.7)

    @pytest.mark.asyncio
    async def test_missing_key_fails_without_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=_completion("x"))

        oracle = ChatCompletionsOracle(api_key="", transport=httpx.MockTransport(handler))
        with pytest.raises(OracleCallError):
            await oracle.complete("p", 0.7)
        assert calls == []
