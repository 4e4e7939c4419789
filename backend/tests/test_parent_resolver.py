"""
Tests for parent resolution.

Key tests:
1. No row at any attempt -> ParentNeverPublished after exactly 5 reads, 4 sleeps of 2s
2. Row without ipId at every attempt -> ParentNotConfirmed
3. Row appears on the 3rd attempt -> resolved, no further retries
4. Returned value comes from a final fresh read
5. Cross-check reports disagreement without changing the result
6. A real concurrent writer landing mid-poll is observed
"""
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from remixhub.errors import (
    ParentNeverPublished,
    ParentNotAnchored,
    ParentNotConfirmed,
    UpstreamUnavailable,
    ValidationError,
)
from remixhub.services.registry import AnchorWriter, ParentResolver, RegistrationCache

from conftest import ORIGINAL_CID


def _row(ip_id=None):
    return SimpleNamespace(cid=ORIGINAL_CID, ip_id=ip_id)


class ScriptedCache:
    """Returns one scripted read per call; the last entry repeats."""

    def __init__(self, script):
        self.script = list(script)
        self.reads = 0
        self.releases = 0

    def get_by_cid(self, cid):
        value = self.script[min(self.reads, len(self.script) - 1)]
        self.reads += 1
        return value

    def release(self):
        self.releases += 1


class FakeSleep:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sleep():
    return FakeSleep()


class TestRetryBudget:

    def test_never_published_after_five_attempts(self, sleep):
        cache = ScriptedCache([None])
        resolver = ParentResolver(cache, sleep=sleep)

        with pytest.raises(ParentNeverPublished) as exc:
            resolver.resolve(ORIGINAL_CID)

        assert cache.reads == 5
        assert sleep.calls == [2.0, 2.0, 2.0, 2.0]
        assert exc.value.attempts == 5
        assert exc.value.reason == "never_published"
        assert isinstance(exc.value, ParentNotAnchored)

    def test_not_confirmed_when_row_lacks_ip_id(self, sleep):
        cache = ScriptedCache([_row()])
        resolver = ParentResolver(cache, sleep=sleep)

        with pytest.raises(ParentNotConfirmed) as exc:
            resolver.resolve(ORIGINAL_CID)

        assert cache.reads == 5
        assert exc.value.reason == "not_confirmed"

    def test_row_seen_then_missing_is_not_confirmed(self, sleep):
        cache = ScriptedCache([_row(), None])
        with pytest.raises(ParentNotConfirmed):
            ParentResolver(cache, sleep=sleep).resolve(ORIGINAL_CID)

    def test_configured_attempts_and_delay(self, sleep):
        cache = ScriptedCache([None])
        resolver = ParentResolver(cache, max_attempts=3, delay_seconds=0.5, sleep=sleep)

        with pytest.raises(ParentNeverPublished):
            resolver.resolve(ORIGINAL_CID)

        assert cache.reads == 3
        assert sleep.calls == [0.5, 0.5]

    def test_invalid_attempts(self):
        with pytest.raises(ValueError):
            ParentResolver(ScriptedCache([None]), max_attempts=0)


class TestResolution:

    def test_immediate_hit_no_sleep(self, sleep):
        cache = ScriptedCache([_row("0xparent")])
        assert ParentResolver(cache, sleep=sleep).resolve(ORIGINAL_CID) == "0xparent"
        assert sleep.calls == []

    def test_appears_on_third_attempt(self, sleep):
        cache = ScriptedCache([None, None, _row("0xparent")])
        resolution = ParentResolver(cache, sleep=sleep).resolve_detailed(ORIGINAL_CID)

        assert resolution.ip_id == "0xparent"
        assert resolution.attempts == 3
        assert sleep.calls == [2.0, 2.0]
        # three polls plus the final fresh read
        assert cache.reads == 4

    def test_ip_id_lands_on_existing_row(self, sleep):
        cache = ScriptedCache([_row(), _row(), _row("0xparent")])
        assert ParentResolver(cache, sleep=sleep).resolve(ORIGINAL_CID) == "0xparent"

    def test_returns_final_read_value(self, sleep):
        cache = ScriptedCache([None, _row("0xstale"), _row("0xfresh")])
        assert ParentResolver(cache, sleep=sleep).resolve(ORIGINAL_CID) == "0xfresh"

    def test_final_read_missing_falls_back_to_observed(self, sleep):
        cache = ScriptedCache([_row("0xobserved"), None])
        assert ParentResolver(cache, sleep=sleep).resolve(ORIGINAL_CID) == "0xobserved"

    def test_strips_cid(self, sleep):
        cache = MagicMock()
        cache.get_by_cid.return_value = _row("0xparent")
        ParentResolver(cache, sleep=sleep).resolve(f" {ORIGINAL_CID} ")
        cache.get_by_cid.assert_called_with(ORIGINAL_CID)

    @pytest.mark.parametrize("cid", [None, "", "  "])
    def test_cid_required(self, cid, sleep):
        with pytest.raises(ValidationError):
            ParentResolver(ScriptedCache([None]), sleep=sleep).resolve(cid)


class TestCrossCheck:

    def test_unknown_to_story_adds_warning(self, sleep):
        story_api = MagicMock()
        story_api.get_asset.return_value = None
        resolver = ParentResolver(ScriptedCache([_row("0xparent")]), sleep=sleep, story_api=story_api)

        resolution = resolver.resolve_detailed(ORIGINAL_CID)

        assert resolution.ip_id == "0xparent"
        assert resolution.warnings[0]["code"] == "parent_cross_check_mismatch"

    def test_known_to_story_no_warning(self, sleep):
        story_api = MagicMock()
        story_api.get_asset.return_value = {"ipId": "0xparent"}
        resolver = ParentResolver(ScriptedCache([_row("0xparent")]), sleep=sleep, story_api=story_api)

        assert resolver.resolve_detailed(ORIGINAL_CID).warnings == []

    def test_story_unavailable_is_ignored(self, sleep):
        story_api = MagicMock()
        story_api.get_asset.side_effect = UpstreamUnavailable("down", service="story_api")
        resolver = ParentResolver(ScriptedCache([_row("0xparent")]), sleep=sleep, story_api=story_api)

        resolution = resolver.resolve_detailed(ORIGINAL_CID)
        assert resolution.ip_id == "0xparent"
        assert resolution.warnings == []


class TestConcurrentWriter:

    def test_observes_anchor_committed_by_other_session(self, file_database):
        """The publish flow's anchor lands while the remix flow is polling."""
        remix_session = file_database.session()
        publish_session = file_database.session()
        publish_writer = AnchorWriter(RegistrationCache(publish_session))
        publish_writer.anchor(ORIGINAL_CID, title="pending")

        calls = []

        def publish_completes(seconds):
            calls.append(seconds)
            if len(calls) == 2:
                publish_writer.anchor(ORIGINAL_CID, ip_id="0xlanded", anchor_tx_hash="0xtx")

        try:
            resolver = ParentResolver(RegistrationCache(remix_session), sleep=publish_completes)
            assert resolver.resolve(ORIGINAL_CID) == "0xlanded"
            assert len(calls) == 2
        finally:
            publish_session.close()
            remix_session.close()
