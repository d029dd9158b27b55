import json

import httpx
import pytest

from suppscore.adapters.openrouter_client import LLMResponse, OpenRouterClient
from suppscore.errors import LLMHTTPError, LLMNetworkError, QuotaExceededError, ScoringError
from suppscore.layers.scoring import SYSTEM_PROMPT, ScoringService, extract_json
from suppscore.models.product import StepStatus


GOOD_JSON = json.dumps({
    "score": 81,
    "purity": 70,
    "effectiveness": 90,
    "safety": 85,
    "value": 60,
    "highlights": ["25 g protein per scoop", "Third-party tested", "Low sugar", "Extra"],
    "concerns": ["Contains sucralose"],
})


class FakeBackend:
    """Scoring backend that replays canned outcomes in order."""

    model = "test/model"

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.prompts = []

    def is_available(self):
        return True

    async def complete_json(self, system_prompt, user_prompt):
        self.calls += 1
        self.prompts.append((system_prompt, user_prompt))
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return LLMResponse(content=outcome, model=self.model)


@pytest.mark.asyncio
async def test_score_normalizes_payload(sleeps):
    backend = FakeBackend([GOOD_JSON])
    service = ScoringService(backend=backend, sleep=sleeps)

    payload, steps = await service.score("Quattro", ["Whey"], "Protein 25 g", [])

    assert payload.score == 81
    assert payload.highlights == ["25 g protein per scoop", "Third-party tested", "Low sugar"]
    assert [s.status for s in steps] == [StepStatus.OK]
    assert steps[0].provider == "score"
    system_prompt, user_prompt = backend.prompts[0]
    assert system_prompt == SYSTEM_PROMPT
    assert json.loads(user_prompt)["title"] == "Quattro"


@pytest.mark.asyncio
async def test_server_errors_are_retried_three_times(sleeps):
    backend = FakeBackend([LLMHTTPError(500), LLMHTTPError(502), LLMHTTPError(503)])
    service = ScoringService(backend=backend, sleep=sleeps)

    with pytest.raises(ScoringError) as excinfo:
        await service.score("Quattro", [], "", [])

    assert not isinstance(excinfo.value, QuotaExceededError)
    assert backend.calls == 3
    assert len(sleeps.calls) == 2
    assert all(0 <= delay <= 0.5 for delay in sleeps.calls)


@pytest.mark.asyncio
async def test_transient_failure_then_success(sleeps):
    backend = FakeBackend([LLMNetworkError("reset"), GOOD_JSON])
    service = ScoringService(backend=backend, sleep=sleeps)

    payload, steps = await service.score("Quattro", [], "", [])

    assert payload.score == 81
    assert backend.calls == 2
    assert [s.status for s in steps] == [StepStatus.ERROR, StepStatus.OK]
    assert steps[0].hint == "network_error"
    assert [s.attempt for s in steps] == [1, 2]


@pytest.mark.asyncio
async def test_quota_refusal_is_not_retried(sleeps):
    backend = FakeBackend([LLMHTTPError(429), GOOD_JSON])
    service = ScoringService(backend=backend, sleep=sleeps)

    with pytest.raises(QuotaExceededError) as excinfo:
        await service.score("Quattro", [], "", [])

    assert backend.calls == 1
    assert sleeps.calls == []
    assert excinfo.value.status_code == 503
    assert excinfo.value.error_code == "openrouter_quota"


@pytest.mark.asyncio
async def test_client_errors_fail_without_retry(sleeps):
    backend = FakeBackend([LLMHTTPError(400), GOOD_JSON])
    service = ScoringService(backend=backend, sleep=sleeps)

    with pytest.raises(ScoringError) as excinfo:
        await service.score("Quattro", [], "", [])

    assert backend.calls == 1
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
async def test_json_wrapped_in_prose_is_recovered(sleeps):
    backend = FakeBackend(['Sure! Here is the result:\n{"score": 64, "concerns": ["Proprietary blend"]}\nThanks'])
    service = ScoringService(backend=backend, sleep=sleeps)

    payload, _ = await service.score("Quattro", [], "", [])

    assert payload.score == 64
    assert payload.concerns == ["Proprietary blend"]
    assert payload.purity == 0


@pytest.mark.asyncio
async def test_unparseable_output_is_a_bad_gateway(sleeps):
    backend = FakeBackend(["I cannot score this product."])
    service = ScoringService(backend=backend, sleep=sleeps)

    with pytest.raises(ScoringError) as excinfo:
        await service.score("Quattro", [], "", [])

    assert excinfo.value.status_code == 502
    assert backend.calls == 1


def test_extract_json_strategies():
    assert extract_json('{"score": 1}') == {"score": 1}
    assert extract_json('noise {"score": 2} noise') == {"score": 2}
    assert extract_json('{"score": 3} and {"other": 4}') == {"score": 3}
    assert extract_json("[1, 2]") is None
    assert extract_json("") is None
    assert extract_json(None) is None


@pytest.mark.asyncio
async def test_openrouter_client_maps_status_codes(fetcher_factory):
    requests = []

    def handler(request):
        requests.append(json.loads(request.content))
        if len(requests) == 1:
            return httpx.Response(429, json={"error": {"message": "quota"}})
        return httpx.Response(200, json={
            "model": "openai/gpt-4o-mini",
            "choices": [{"message": {"content": GOOD_JSON}}],
        })

    client = OpenRouterClient(api_key="sk-or-test", model="openai/gpt-4o-mini",
                              fetcher=fetcher_factory(handler))

    with pytest.raises(LLMHTTPError) as excinfo:
        await client.complete_json("system", "user")
    assert excinfo.value.status_code == 429

    response = await client.complete_json("system", "user")
    assert response.content == GOOD_JSON
    assert requests[0]["temperature"] == 0
    assert requests[0]["response_format"] == {"type": "json_object"}
    assert requests[0]["messages"][0] == {"role": "system", "content": "system"}


@pytest.mark.asyncio
async def test_openrouter_client_wraps_network_errors(fetcher_factory):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = OpenRouterClient(api_key="sk-or-test", fetcher=fetcher_factory(handler))
    with pytest.raises(LLMNetworkError):
        await client.complete_json("system", "user")
