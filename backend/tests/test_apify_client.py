import json

import httpx
import pytest

from social_signals.core.errors import ProviderError
from social_signals.linkedin.services import build_apify_services
from social_signals.linkedin.services.reactions import ApifyReactionsService

POST = "https://www.linkedin.com/posts/activity-7302346926123798528"


def apify_transport(statuses, items, calls=None, submit_status=201):
    """Fake Apify API: run submission, a status sequence, then dataset items."""
    statuses = list(statuses)

    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        path = request.url.path
        if request.method == "POST" and path.endswith("/runs"):
            if submit_status >= 400:
                return httpx.Response(submit_status, json={"error": {"message": "bad input"}})
            return httpx.Response(submit_status, json={"data": {"id": "run1", "status": "READY", "defaultDatasetId": "ds1"}})
        if path.endswith("/actor-runs/run1"):
            status = statuses.pop(0) if len(statuses) > 1 else statuses[0]
            return httpx.Response(200, json={"data": {"id": "run1", "status": status, "defaultDatasetId": "ds1"}})
        if path.endswith("/datasets/ds1/items"):
            return httpx.Response(200, json=items)
        return httpx.Response(404)

    return httpx.MockTransport(handler)


def reactions_service(transport, **kwargs):
    return ApifyReactionsService("token", poll_interval=0, transport=transport, **kwargs)


async def test_run_polls_until_succeeded_and_parses_items():
    calls = []
    items = [
        {"reaction_type": "LIKE", "reactor": {"urn": "ACoA1", "name": "A", "profile_url": "https://www.linkedin.com/in/a"},
         "_metadata": {"page_number": 1, "total_reactions": 1}},
        {"reaction_type": "LIKE", "reactor": {"name": "no url"}},
    ]
    service = reactions_service(apify_transport(["RUNNING", "RUNNING", "SUCCEEDED"], items, calls))

    reactions = await service.get_reactions_page(POST, page_number=2, limit=50)

    assert len(reactions) == 1
    assert reactions[0].reactor.urn == "ACoA1"
    assert reactions[0].metadata.total_reactions == 1

    submit = calls[0]
    assert submit.headers["Authorization"] == "Bearer token"
    assert json.loads(submit.content) == {"post_url": POST, "page_number": 2, "reaction_type": "ALL", "limit": 50}
    assert sum(1 for c in calls if "/actor-runs/" in c.url.path) == 3
    assert calls[-1].url.params["clean"] == "true"


@pytest.mark.parametrize("final_status", ["FAILED", "ABORTED", "TIMED-OUT"])
async def test_unsuccessful_run_raises(final_status):
    service = reactions_service(apify_transport([final_status], []))
    with pytest.raises(ProviderError) as exc:
        await service.get_reactions_page(POST)
    assert exc.value.run_id == "run1"
    assert exc.value.status == final_status


async def test_rejected_submission_raises():
    service = reactions_service(apify_transport(["SUCCEEDED"], [], submit_status=400))
    with pytest.raises(ProviderError, match="status 400"):
        await service.get_reactions_page(POST)


async def test_run_exceeding_max_wait_raises():
    service = reactions_service(apify_transport(["RUNNING"], []), max_wait=0)
    with pytest.raises(ProviderError, match="did not finish"):
        await service.get_reactions_page(POST)


async def test_network_error_becomes_provider_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    service = reactions_service(httpx.MockTransport(handler))
    with pytest.raises(ProviderError):
        await service.get_reactions_page(POST)


async def test_enrichment_drops_not_found_rows():
    calls = []
    items = [
        {"basic_info": {"public_identifier": "jdoe", "first_name": "Jane"}, "profileUrl": "https://www.linkedin.com/in/jdoe"},
        {"message": "No profile found for ghost"},
    ]
    services = build_apify_services("token", transport=apify_transport(["SUCCEEDED"], items, calls), poll_interval=0)

    profiles = await services.profiles.enrich_profiles(["jdoe", "ghost"])

    assert [p.basic_info.public_identifier for p in profiles] == ["jdoe"]
    assert json.loads(calls[0].content) == {"usernames": ["jdoe", "ghost"], "includeEmail": False}


async def test_empty_post_detail_raises():
    services = build_apify_services("token", transport=apify_transport(["SUCCEEDED"], []), poll_interval=0)
    with pytest.raises(ProviderError, match="No post detail"):
        await services.post_detail.get_post_detail(POST)


async def test_profile_posts_input_and_post_ids():
    calls = []
    items = [{"url": "https://www.linkedin.com/posts/jdoe_hi-activity-7302346926123798528-x", "numLikes": None}]
    services = build_apify_services("token", transport=apify_transport(["SUCCEEDED"], items, calls), poll_interval=0)

    posts = await services.profile_posts.get_profile_posts("jdoe", limit=5, scrape_until="2024-01-01")

    assert json.loads(calls[0].content) == {"username": "jdoe", "limit": 5, "scrape_until": "2024-01-01"}
    assert posts[0].post_id() == "7302346926123798528"
    assert posts[0].num_likes == 0


def test_token_is_required():
    with pytest.raises(ValueError):
        ApifyReactionsService("")
