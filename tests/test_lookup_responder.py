# tests/test_lookup_responder.py
from unittest.mock import Mock

from platestream.network.types import WsControlMessage, WsLookupResult
from platestream.server.LookupResponder import MockLookupResponder, RegistryLookupResponder


def _final(*pairs):
    return WsControlMessage(
        type="final",
        payload={"alternatives": [{"text": t, "confidence": c} for t, c in pairs]},
    )


def test_mock_responder_always_matches_fixed_plate():
    responder = MockLookupResponder()
    for msg in (_final(), WsControlMessage(type="partial", payload={"partial": "x"})):
        assert responder.respond(msg) == WsLookupResult(plate="G7B2JK", match=True, score=0.98)


class TestRegistryLookupResponder:
    def test_final_best_alternative_is_normalized_and_matched(self, registry):
        responder = RegistryLookupResponder(registry)

        result = responder.respond(_final(("alpha bravo", 0.2), ("mike echo four seven x-ray kilo", 0.85)))

        assert result == WsLookupResult(plate="ME47XK", match=True, score=0.85)

    def test_final_miss_reports_candidate(self, registry):
        result = RegistryLookupResponder(registry).respond(_final(("zulu zulu", 0.6)))
        assert result == WsLookupResult(plate="ZZ", match=False, score=0.6)

    def test_confidence_clamped_to_unit_interval(self, registry):
        result = RegistryLookupResponder(registry).respond(_final(("a b c d e", 1.7)))
        assert result.score == 1.0
        assert result.match

    def test_partial_uses_partial_text_with_zero_score(self, registry):
        msg = WsControlMessage(type="partial", payload={"partial": "a b c d e"})
        assert RegistryLookupResponder(registry).respond(msg) == WsLookupResult("ABCDE", True, 0.0)

    def test_empty_text_yields_no_candidate(self, registry):
        responder = RegistryLookupResponder(registry)
        assert responder.respond(_final()) == WsLookupResult(plate="", match=False, score=0.0)
        assert responder.respond(WsControlMessage(type="final")) == WsLookupResult("", False, 0.0)
        assert responder.respond(WsControlMessage(type="partial", payload={"partial": ""})).plate == ""

    def test_registry_error_is_a_miss(self):
        registry = Mock()
        registry.lookup.side_effect = RuntimeError("boom")
        result = RegistryLookupResponder(registry).respond(_final(("a b c d e", 0.5)))
        assert result == WsLookupResult(plate="ABCDE", match=False, score=0.5)
