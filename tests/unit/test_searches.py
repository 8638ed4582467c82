"""
Unit tests for src/searches/

Drives each orchestrator end to end against scripted providers and
in-memory stores: cache-first behaviour, degraded extraction, batch pacing
and the contact relevance pipeline.
"""

import asyncio
import json
import time
from unittest.mock import AsyncMock, MagicMock

import pytest

from helpers.fakes import FakeApollo, InMemoryCacheStore, InMemoryHistory, ScriptedProvider, person
from src.common.error_handling import (
    NoResultsError,
    ProviderTransportError,
    SearchTimeoutError,
    SearchValidationError,
)
from src.common.rate_limiter import RateLimiter
from src.common.repositories.reveal_store import RevealStore
from src.prospecting.catalog import BRAINSTORMING_DEFAULT_PRODUCTS
from src.prospecting.models import (
    BrainstormingRequest,
    CompetitorAnalysisRequest,
    CompetitorCriteria,
    CompetitorIdentificationRequest,
    ContactSearchRequest,
    EnterpriseSearchRequest,
)
from src.prospecting.pitch import PitchWriter
from src.prospecting.relevance import RelevanceFilter
from src.prospecting.scoring import ScoringWeights
from src.searches import (
    BrainstormingSearch,
    CompetitorAnalysisSearch,
    CompetitorIdentificationSearch,
    ContactReveal,
    ContactSearch,
    EnterpriseSearch,
)
from src.searches.base import run_bounded, run_with_timeout
from src.searches.contacts import belongs_to_company


# ===== FIXTURES =====

def market(name):
    return {
        "nom_marche": name,
        "justification": (
            f"Le segment {name} consomme des ressorts de compression et des pièces découpées "
            "en moyenne série, avec une forte exigence de précision et de traçabilité."
        ),
        "produits_cgr_applicables": ["Ressorts de compression", "Pièces découpées"],
        "exemples_entreprises": ["Exemple SAS"],
        "niveau_pertinence": "haute",
    }


def markets_reply(names, **extra):
    return json.dumps({"markets": [market(n) for n in names], **extra}, ensure_ascii=False)


def enterprise_record(name, targets=7, proposed=2, website="https://www.exemple.fr"):
    return {
        "nom_entreprise": name,
        "site_web": website,
        "description_activite": f"{name} fabrique des systèmes de freinage pour poids lourds.",
        "potentiel_cgr": {
            "produits_cibles_chez_le_prospect": [f"étrier {i}" for i in range(targets)],
            "produits_cgr_a_proposer": [f"ressort {i}" for i in range(proposed)],
            "argumentaire_approche": "Réduire le nombre de fournisseurs de ressorts.",
        },
        "sources": ["https://www.societe.com/exemple"],
    }


def analysis_reply(summary="Leader européen des ressorts techniques"):
    return json.dumps({
        "analysis": {
            "synthese_entreprise": summary,
            "produits_services": ["Ressorts de compression", "Fils formés"],
            "forces_apparentes": ["Capacité grande série"],
            "faiblesses_potentielles": ["Peu présent en médical"],
            "sources": ["https://concurrent.example.com"],
        }
    }, ensure_ascii=False)


def competitor(name, region="France"):
    return {
        "nom_entreprise": name,
        "presence_geographique": [region],
        "marches_cibles": ["Automobile"],
        "specialites_produits": ["Ressorts fil"],
        "positionnement_marche": "Fabricant de ressorts grande série",
        "site_web": f"https://www.{name.lower().replace(' ', '-')}.com",
    }


def identification_reply(names, region="France"):
    return json.dumps({
        "analysis": {
            "competitors": [competitor(n, region) for n in names],
            "sources_globales": ["https://annuaire.example.org"],
        }
    }, ensure_ascii=False)


def fast_limiter():
    return RateLimiter("test", requests_per_minute=1000)


@pytest.fixture
def cache():
    return InMemoryCacheStore()


@pytest.fixture
def history():
    return InMemoryHistory()


# ===== TESTS: run_bounded / run_with_timeout =====

class TestRunBounded:
    """Tests for the bounded work queue."""

    @pytest.mark.asyncio
    async def test_keeps_item_order(self):
        async def worker(n):
            await asyncio.sleep(0.01 * (5 - n))
            return n * 10

        assert await run_bounded([1, 2, 3, 4], worker, max_concurrency=4) == [10, 20, 30, 40]

    @pytest.mark.asyncio
    async def test_respects_max_concurrency(self):
        state = {"active": 0, "max": 0}

        async def worker(n):
            state["active"] += 1
            state["max"] = max(state["max"], state["active"])
            await asyncio.sleep(0.01)
            state["active"] -= 1
            return n

        await run_bounded(list(range(6)), worker, max_concurrency=2)
        assert state["max"] == 2

    @pytest.mark.asyncio
    async def test_exception_returned_in_place(self):
        async def worker(n):
            if n == 2:
                raise ValueError("bad item")
            return n

        results = await run_bounded([1, 2, 3], worker)
        assert results[0] == 1
        assert isinstance(results[1], ValueError)
        assert results[2] == 3

    @pytest.mark.asyncio
    async def test_limiter_acquired_per_item(self):
        limiter = MagicMock()
        limiter.acquire_async = AsyncMock(return_value=True)

        async def worker(n):
            return n

        await run_bounded([1, 2, 3], worker, limiter=limiter)
        assert limiter.acquire_async.await_count == 3

    @pytest.mark.asyncio
    async def test_refused_slot_skips_item(self):
        limiter = MagicMock()
        limiter.provider = "perplexity_batch"
        limiter.acquire_async = AsyncMock(side_effect=[True, False, True])
        ran = []

        async def worker(n):
            ran.append(n)
            return n

        results = await run_bounded([1, 2, 3], worker, limiter=limiter)

        assert ran == [1, 3]
        assert results[0] == 1
        assert isinstance(results[1], ProviderTransportError)
        assert results[1].status == 429
        assert "perplexity_batch" in str(results[1])
        assert results[2] == 3

    @pytest.mark.asyncio
    async def test_delay_between_starts(self):
        async def worker(n):
            return n

        start = time.monotonic()
        await run_bounded([1, 2, 3], worker, delay_seconds=0.05)
        # no delay before the first start
        assert time.monotonic() - start >= 0.1


class TestRunWithTimeout:

    @pytest.mark.asyncio
    async def test_returns_result(self):
        async def quick():
            return "ok"

        assert await run_with_timeout(quick(), 1, "quick") == "ok"

    @pytest.mark.asyncio
    async def test_timeout_raises_search_timeout(self):
        with pytest.raises(SearchTimeoutError) as exc_info:
            await run_with_timeout(asyncio.sleep(1), 0.01, "slow stage")
        assert exc_info.value.status_code == 408
        assert "slow stage" in exc_info.value.message


# ===== TESTS: Enterprise search =====

class TestEnterpriseSearch:
    """Tests for EnterpriseSearch."""

    def request(self, **kwargs):
        defaults = {"secteurs_activite": ["Automobile"], "zone_geographique": ["France"], "nombre_resultats": 5}
        defaults.update(kwargs)
        return EnterpriseSearchRequest(**defaults)

    @pytest.mark.asyncio
    async def test_ranks_and_excludes_clients(self, cache, history):
        """Existing key accounts are dropped and weak candidates never backfill."""
        reply = json.dumps({"enterprises": [
            enterprise_record("Freins Dupont"),
            enterprise_record("Valeo Systèmes Thermiques"),
            enterprise_record("Petit Atelier", targets=0, proposed=0, website=""),
        ]}, ensure_ascii=False)
        provider = ScriptedProvider([reply])
        search = EnterpriseSearch(provider, cache, history, weights=ScoringWeights())

        outcome = await search.search(self.request())

        assert outcome.success is True
        payload = outcome.payload
        assert payload["searchType"] == "entreprises"
        assert [p["company"] for p in payload["prospects"]] == ["Freins Dupont"]
        assert payload["totalFound"] == 1
        assert payload["cached"] is False
        assert "https://www.societe.com/exemple" in payload["sources"]
        assert len(history.records) == 1

    @pytest.mark.asyncio
    async def test_rejected_records_reported_as_warnings(self, cache):
        nameless = enterprise_record("Sans Nom")
        del nameless["nom_entreprise"]
        reply = json.dumps({"enterprises": [enterprise_record("Freins Dupont"), nameless]}, ensure_ascii=False)
        search = EnterpriseSearch(ScriptedProvider([reply]), cache, weights=ScoringWeights())

        outcome = await search.search(self.request())

        warnings = outcome.payload["debug"]["warnings"]
        assert len(warnings) == 1
        assert warnings[0]["stage"] == "normalize"
        assert warnings[0]["message"] == "1 enterprise records rejected"

    @pytest.mark.asyncio
    async def test_second_call_served_from_cache(self, cache, history):
        reply = json.dumps({"enterprises": [enterprise_record("Freins Dupont")]})
        provider = ScriptedProvider([reply])
        search = EnterpriseSearch(provider, cache, history, weights=ScoringWeights())

        first = await search.search(self.request())
        second = await search.search(self.request())

        assert len(provider.calls) == 1
        assert second.cached is True
        assert second.payload["cached"] is True
        assert {**second.payload, "cached": False} == first.payload

    @pytest.mark.asyncio
    async def test_result_count_is_part_of_cache_key(self, cache):
        reply = json.dumps({"enterprises": [enterprise_record("Freins Dupont")]})
        provider = ScriptedProvider([reply, reply])
        search = EnterpriseSearch(provider, cache, weights=ScoringWeights())

        await search.search(self.request(nombre_resultats=5))
        await search.search(self.request(nombre_resultats=3))

        assert len(provider.calls) == 2

    @pytest.mark.asyncio
    async def test_nothing_ranked_raises_no_results(self, cache):
        reply = json.dumps({"enterprises": [enterprise_record("Valeo")]})
        search = EnterpriseSearch(ScriptedProvider([reply]), cache, weights=ScoringWeights())

        with pytest.raises(NoResultsError) as exc_info:
            await search.search(self.request())
        assert exc_info.value.extra["suggestions"]

    @pytest.mark.asyncio
    async def test_unparseable_reply_degrades(self, cache):
        search = EnterpriseSearch(ScriptedProvider(["Je ne peux pas répondre."]), cache)

        outcome = await search.search(self.request())

        assert outcome.success is False
        assert outcome.payload["prospects"] == []
        assert outcome.payload["total"] == 0
        assert outcome.payload["success"] is False
        assert await cache.list_keys() == []

    @pytest.mark.asyncio
    async def test_missing_sector_rejected_before_provider_call(self, cache):
        provider = ScriptedProvider([])
        search = EnterpriseSearch(provider, cache)

        with pytest.raises(SearchValidationError):
            await search.search(self.request(secteurs_activite=[]))
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_history_failure_does_not_fail_search(self, cache):
        reply = json.dumps({"enterprises": [enterprise_record("Freins Dupont")]})
        search = EnterpriseSearch(
            ScriptedProvider([reply]), cache, InMemoryHistory(fail=True), weights=ScoringWeights()
        )

        outcome = await search.search(self.request())

        assert outcome.success is True

    @pytest.mark.asyncio
    async def test_provider_error_propagates(self, cache):
        provider = ScriptedProvider([ProviderTransportError("perplexity", "Bad gateway", status=502)])
        search = EnterpriseSearch(provider, cache)

        with pytest.raises(ProviderTransportError):
            await search.search(self.request())


# ===== TESTS: Brainstorming =====

class TestBrainstormingSearch:
    """Tests for BrainstormingSearch."""

    @pytest.mark.asyncio
    async def test_defaults_applied_for_sector_only_request(self, cache, history):
        """One sector, nothing else: default catalog, France, exploratory mode."""
        names = ["Freinage poids lourds", "Sièges", "Serrures", "Boîtes de vitesses", "Pédaliers"]
        provider = ScriptedProvider([markets_reply(names, analyse_tendances="Électrification")])
        search = BrainstormingSearch(provider, cache, history)

        outcome = await search.search(BrainstormingRequest(secteurs_activite=["Automobile"]))

        assert outcome.success is True
        payload = outcome.payload
        assert payload["totalFound"] == 5
        assert [m["marketName"] for m in payload["marketOpportunities"]] == names
        assert payload["modeRecherche"] == "exploratoire"
        assert payload["nicheSpecifiee"] is None
        assert payload["analyseTendances"] == "Électrification"
        assert payload["debug"]["usedDefaultProducts"] is True
        assert payload["debug"]["productsUsed"] == list(BRAINSTORMING_DEFAULT_PRODUCTS)
        assert payload["debug"]["zonesUsed"] == ["France"]

        prompt = provider.calls[0]["user"]
        for product in BRAINSTORMING_DEFAULT_PRODUCTS:
            assert product in prompt
        assert "France" in prompt

    @pytest.mark.asyncio
    async def test_free_text_sector_is_targeted(self, cache):
        provider = ScriptedProvider([markets_reply(["Vélos cargo"])])
        search = BrainstormingSearch(provider, cache)

        outcome = await search.search(BrainstormingRequest(
            secteurs_activite=["Mobilité"], secteur_activite_libre="Vélos cargo", nombre_resultats=1,
        ))

        assert outcome.payload["modeRecherche"] == "ciblé"
        assert outcome.payload["nicheSpecifiee"] == "Vélos cargo"

    @pytest.mark.asyncio
    async def test_truncated_to_requested_count(self, cache):
        provider = ScriptedProvider([markets_reply([f"Marché {i}" for i in range(7)])])
        search = BrainstormingSearch(provider, cache)

        outcome = await search.search(BrainstormingRequest(secteurs_activite=["Médical"], nombre_resultats=3))

        assert outcome.payload["totalFound"] == 3

    @pytest.mark.asyncio
    async def test_truncated_reply_keeps_complete_markets(self, cache):
        """A reply cut mid-array still yields the markets written before the cut."""
        full = markets_reply(["Robotique", "Domotique"])
        truncated = full[:-2] + ', {"nom_marche": "Agricul'
        search = BrainstormingSearch(ScriptedProvider([truncated]), cache)

        outcome = await search.search(BrainstormingRequest(secteurs_activite=["Industrie"]))

        assert outcome.success is True
        assert [m["marketName"] for m in outcome.payload["marketOpportunities"]] == ["Robotique", "Domotique"]
        assert outcome.payload["debug"]["json_repaired"] is True

    @pytest.mark.asyncio
    async def test_bare_list_reply_with_trailing_comma(self, cache):
        """A reply that is only the list of markets, with a stray comma, is still used."""
        reply = json.dumps([market("Ascenseurs")], ensure_ascii=False)[:-1] + ",]"
        search = BrainstormingSearch(ScriptedProvider([reply]), cache)

        outcome = await search.search(BrainstormingRequest(secteurs_activite=["Bâtiment"], nombre_resultats=1))

        assert outcome.success is True
        assert [m["marketName"] for m in outcome.payload["marketOpportunities"]] == ["Ascenseurs"]

    @pytest.mark.asyncio
    async def test_unrecoverable_reply_degrades(self, cache):
        search = BrainstormingSearch(ScriptedProvider(["Désolé, aucune donnée disponible."]), cache)

        outcome = await search.search(BrainstormingRequest(secteurs_activite=["Industrie"]))

        assert outcome.success is False
        assert outcome.payload["markets"] == []
        assert outcome.payload["total"] == 0
        assert outcome.payload["success"] is False

    @pytest.mark.asyncio
    async def test_short_justifications_rejected(self, cache):
        reply = json.dumps({"markets": [{"nom_marche": "Vague", "justification": "Trop court"}]})
        search = BrainstormingSearch(ScriptedProvider([reply]), cache)

        with pytest.raises(NoResultsError):
            await search.search(BrainstormingRequest(secteurs_activite=["Industrie"]))

    @pytest.mark.asyncio
    async def test_no_sector_rejected(self, cache):
        search = BrainstormingSearch(ScriptedProvider([]), cache)

        with pytest.raises(SearchValidationError):
            await search.search(BrainstormingRequest())


# ===== TESTS: Competitor analysis =====

class TestCompetitorAnalysisSearch:
    """Tests for CompetitorAnalysisSearch."""

    def make_search(self, provider, cache, **kwargs):
        return CompetitorAnalysisSearch(
            provider, cache, batch_limiter=fast_limiter(), delay_seconds=0, **kwargs
        )

    @pytest.mark.asyncio
    async def test_single_analysis(self, cache, history):
        search = self.make_search(ScriptedProvider([analysis_reply()]), cache, history=history)

        outcome = await search.search(CompetitorAnalysisRequest(nom_concurrent="Ressorts Alpha"))

        assert outcome.success is True
        analysis = outcome.payload["competitorAnalysis"]
        assert analysis["companyName"] == "Ressorts Alpha"
        assert analysis["companySummary"] == "Leader européen des ressorts techniques"
        assert outcome.payload["hasCompetitorAnalysis"] is True
        assert outcome.payload["sources"] == [
            "https://concurrent.example.com",
            "https://source.example.org/a",
        ]
        assert len(history.records) == 1

    @pytest.mark.asyncio
    async def test_batch_with_one_failing_name(self, cache):
        """Each name succeeds or fails on its own."""
        provider = ScriptedProvider({
            "Ressorts Alpha": analysis_reply(),
            "Ressorts Beta": ProviderTransportError("perplexity", "Bad gateway", status=502),
            "Ressorts Gamma": "pas de JSON ici",
        })
        search = self.make_search(provider, cache)

        outcome = await search.search(CompetitorAnalysisRequest(
            noms_concurrents=["Ressorts Alpha", "Ressorts Beta", "Ressorts Gamma"],
        ))

        assert outcome.success is True
        items = outcome.payload["analyses"]
        assert [i["name"] for i in items] == ["Ressorts Alpha", "Ressorts Beta", "Ressorts Gamma"]
        assert items[0]["success"] is True
        assert items[1] == {
            "name": "Ressorts Beta", "success": False, "error": "Bad gateway", "type": "provider_error",
        }
        assert items[2]["success"] is False
        assert items[2]["type"] == "competitor_analysis_error"
        assert outcome.payload["totalFound"] == 1

    @pytest.mark.asyncio
    async def test_batch_all_failing(self, cache):
        provider = ScriptedProvider({"Alpha": "rien", "Beta": "rien non plus"})
        search = self.make_search(provider, cache)

        outcome = await search.search(CompetitorAnalysisRequest(noms_concurrents=["Alpha", "Beta"]))

        assert outcome.success is False
        assert outcome.payload["hasCompetitorAnalysis"] is False

    @pytest.mark.asyncio
    async def test_batch_reuses_cached_single_analysis(self, cache):
        provider = ScriptedProvider({"Ressorts Alpha": analysis_reply(), "Ressorts Beta": analysis_reply("Autre")})
        search = self.make_search(provider, cache)

        await search.search(CompetitorAnalysisRequest(nom_concurrent="Ressorts Alpha"))
        outcome = await search.search(CompetitorAnalysisRequest(
            noms_concurrents=["Ressorts Alpha", "Ressorts Beta"],
        ))

        assert len(provider.calls) == 2
        assert outcome.payload["analyses"][0]["cached"] is True
        assert outcome.payload["analyses"][1]["cached"] is False

    @pytest.mark.asyncio
    async def test_batch_concurrency_bounded(self, cache):
        names = [f"Concurrent {i}" for i in range(4)]
        provider = ScriptedProvider({n: analysis_reply() for n in names}, delay=0.01)
        search = self.make_search(provider, cache, max_concurrency=1)

        await search.search(CompetitorAnalysisRequest(noms_concurrents=names))

        assert provider.max_active == 1
        assert len(provider.calls) == 4

    @pytest.mark.asyncio
    async def test_duplicate_names_analyzed_once(self, cache):
        provider = ScriptedProvider({"Alpha": analysis_reply()})
        search = self.make_search(provider, cache)

        outcome = await search.search(CompetitorAnalysisRequest(nom_concurrent="Alpha", noms_concurrents=["alpha"]))

        assert outcome.payload["competitorAnalysis"]["companyName"] == "Alpha"
        assert len(provider.calls) == 1

    @pytest.mark.asyncio
    async def test_no_name_rejected(self, cache):
        with pytest.raises(SearchValidationError):
            await self.make_search(ScriptedProvider([]), cache).search(CompetitorAnalysisRequest())


# ===== TESTS: Competitor identification =====

class TestCompetitorIdentificationSearch:
    """Tests for CompetitorIdentificationSearch."""

    def make_search(self, provider, cache):
        return CompetitorIdentificationSearch(provider, cache, batch_limiter=fast_limiter(), delay_seconds=0)

    @pytest.mark.asyncio
    async def test_single_criteria(self, cache):
        reply = identification_reply(["Alpha Springs", "Beta Federn", "alpha springs", "Gamma", "Delta"])
        search = self.make_search(ScriptedProvider([reply]), cache)

        outcome = await search.search(CompetitorIdentificationRequest(
            region_geographique="France", produit="ressort_fil", volume_production="grande_serie",
            nombre_resultats=3,
        ))

        assert outcome.success is True
        payload = outcome.payload
        assert [c["companyName"] for c in payload["competitors"]] == ["Alpha Springs", "Beta Federn", "Gamma"]
        assert payload["competitors"][0]["matchingCriteria"] == {
            "region": "France", "produit": "ressort_fil", "volume": "grande_serie",
        }
        assert payload["statistics"]["total_concurrents"] == 3
        assert payload["consolidated"] is False
        assert payload["sources"] == ["https://annuaire.example.org", "https://source.example.org/a"]

        cached = await search.lookup("France", "ressort_fil", "grande_serie")
        assert cached["cached"] is True

    @pytest.mark.asyncio
    async def test_multiple_criteria_consolidated(self, cache):
        provider = ScriptedProvider({
            "Régions géographiques: France": identification_reply(["Alpha", "Beta", "Gamma"]),
            "Régions géographiques: Allemagne": identification_reply(["Beta", "Delta", "Epsilon"], "Allemagne"),
        })
        search = self.make_search(provider, cache)

        outcome = await search.search(CompetitorIdentificationRequest(
            region_geographique="France", produit="ressort_fil", volume_production="grande_serie",
            recherche_multiple=True, nombre_resultats=3,
            criteres_additionnels=[CompetitorCriteria(
                region_geographique="Allemagne", produit="piece_plastique", volume_production="petite_serie",
            )],
        ))

        payload = outcome.payload
        assert payload["consolidated"] is True
        # consolidated results are de-duplicated but not truncated
        assert [c["companyName"] for c in payload["competitors"]] == ["Alpha", "Beta", "Gamma", "Delta", "Epsilon"]
        assert payload["debug"]["criteriaSearched"] == 2
        assert await search.lookup("France", "ressort_fil", "grande_serie", True, 1) is not None

    @pytest.mark.asyncio
    async def test_one_failing_criteria_set(self, cache):
        provider = ScriptedProvider({
            "Régions géographiques: France": identification_reply(["Alpha"]),
            "Régions géographiques: Italie": "aucun résultat",
        })
        search = self.make_search(provider, cache)

        outcome = await search.search(CompetitorIdentificationRequest(
            region_geographique="France", produit="ressort_fil", volume_production="grande_serie",
            recherche_multiple=True,
            criteres_additionnels=[CompetitorCriteria(
                region_geographique="Italie", produit="ressort_fil", volume_production="grande_serie",
            )],
        ))

        assert outcome.success is True
        assert outcome.payload["totalFound"] == 1
        assert len(outcome.payload["debug"]["criteriaFailed"]) == 1

    @pytest.mark.asyncio
    async def test_empty_result_not_cached(self, cache):
        reply = json.dumps({"analysis": {"competitors": []}})
        search = self.make_search(ScriptedProvider([reply]), cache)

        outcome = await search.search(CompetitorIdentificationRequest(
            region_geographique="France", produit="ressort_fil", volume_production="grande_serie",
        ))

        assert outcome.payload["hasCompetitors"] is False
        assert await cache.list_keys() == []

    @pytest.mark.asyncio
    async def test_unparseable_single_search_degrades(self, cache):
        search = self.make_search(ScriptedProvider(["rien"]), cache)

        outcome = await search.search(CompetitorIdentificationRequest(
            region_geographique="France", produit="ressort_fil", volume_production="grande_serie",
        ))

        assert outcome.success is False
        assert outcome.payload["competitors"] == []


# ===== TESTS: Contact search =====

class TestContactSearch:
    """Tests for ContactSearch."""

    def make_search(self, apollo, cache, history=None):
        return ContactSearch(
            apollo, cache, history,
            relevance=RelevanceFilter(threshold=0.5),
            pitch_writer=PitchWriter(mode="template"),
        )

    @pytest.mark.asyncio
    async def test_irrelevant_and_foreign_contacts_dropped(self, cache, history):
        """Buyers kept; IT security and people at other companies dropped."""
        apollo = FakeApollo(people=[
            person("Claire", "Martin", "Directeur des Achats"),
            person("Paul", "Durand", "IT Security Manager"),
            person("Luc", "Bernard", "Acheteur", organization="Valeo"),
        ])
        search = self.make_search(apollo, cache, history)

        outcome = await search.search(ContactSearchRequest(
            nom_entreprise="Freins Dupont", contact_roles=["Responsable Achat"],
        ))

        assert outcome.success is True
        payload = outcome.payload
        assert [c["lastName"] for c in payload["contacts"]] == ["Martin"]
        contact = payload["contacts"][0]
        assert contact["relevanceScore"] == 0.9
        assert contact["matchedRoles"] == ["Responsable Achat"]
        assert contact["customPitch"]
        assert payload["hasContacts"] is True
        assert payload["linkedinStats"]["contactsWithLinkedIn"] == 1
        assert payload["roleStats"]["roleDistribution"] == {"Responsable Achat": 1}
        assert payload["debug"]["peopleReturned"] == 3
        assert len(history.records) == 1

    @pytest.mark.asyncio
    async def test_no_match_is_still_success(self, cache):
        search = self.make_search(FakeApollo(people=[]), cache)

        outcome = await search.search(ContactSearchRequest(nom_entreprise="Freins Dupont"))

        assert outcome.success is True
        assert outcome.payload["contacts"] == []
        assert outcome.payload["hasContacts"] is False

    @pytest.mark.asyncio
    async def test_lookup_finds_cached_search(self, cache):
        apollo = FakeApollo(people=[person("Claire", "Martin", "Directeur des Achats")])
        search = self.make_search(apollo, cache)
        await search.search(ContactSearchRequest(
            nom_entreprise="Freins Dupont", contact_roles=["Responsable Achat"], nombre_resultats=5,
        ))

        cached = await search.lookup(company="Freins Dupont", roles=["Responsable Achat"], results=5)
        missing = await search.lookup(company="Freins Dupont", roles=["Directeur R&D"], results=5)

        assert cached["cached"] is True
        assert missing is None

    def test_belongs_to_company(self):
        assert belongs_to_company(person("A", "B", "Acheteur"), "Freins Dupont")
        assert belongs_to_company(person("A", "B", "Acheteur", organization="Freins Dupont SAS"), "freins dupont")
        assert not belongs_to_company(person("A", "B", "Acheteur", organization="Valeo"), "Freins Dupont")
        # same website, different trade name
        assert belongs_to_company(
            person("A", "B", "Acheteur", organization="FD Group"), "Freins Dupont", "https://freins-dupont.fr",
        )


# ===== TESTS: Contact reveal =====

class TestContactReveal:
    """Tests for ContactReveal."""

    @pytest.mark.asyncio
    async def test_reveal_with_mobile_phone(self, cache):
        match = {
            "email": "claire.martin@freins-dupont.fr",
            "linkedin_url": "https://www.linkedin.com/in/claire-martin",
            "phone_numbers": [
                {"type": "work", "sanitized_number": "+33100000000"},
                {"type": "mobile", "sanitized_number": "+33600000000"},
            ],
        }
        apollo = FakeApollo(match=match)
        reveal = ContactReveal(apollo, RevealStore(cache))

        result = await reveal.reveal("Claire", "Martin", organization="Freins Dupont")

        assert result["success"] is True
        assert result["email"] == "claire.martin@freins-dupont.fr"
        assert result["phone"] == "+33600000000"
        assert result["phoneStatus"] == "available"
        assert apollo.match_calls[0]["webhook_url"].endswith("/api/apollo-webhook")

    @pytest.mark.asyncio
    async def test_reveal_without_phone(self, cache):
        reveal = ContactReveal(FakeApollo(match={"email": "a@b.fr", "phone_numbers": []}), RevealStore(cache))

        result = await reveal.reveal("Claire", "Martin")

        assert result["phoneStatus"] == "not_available"
        assert result["phone"] is None

    @pytest.mark.asyncio
    async def test_reveal_locked_email_is_none(self, cache):
        match = {"email": "email_not_unlocked@domain.com", "phone_numbers": []}
        reveal = ContactReveal(FakeApollo(match=match), RevealStore(cache))

        result = await reveal.reveal("Claire", "Martin")

        assert result["success"] is True
        assert result["email"] is None

    @pytest.mark.asyncio
    async def test_reveal_not_found(self, cache):
        reveal = ContactReveal(FakeApollo(match=None), RevealStore(cache))

        result = await reveal.reveal("Claire", "Martin")

        assert result == {"success": False, "message": "Contact not found in Apollo database"}

    @pytest.mark.asyncio
    async def test_reveal_requires_names(self, cache):
        with pytest.raises(SearchValidationError):
            await ContactReveal(FakeApollo(), RevealStore(cache)).reveal("Claire", "")

    @pytest.mark.asyncio
    async def test_webhook_then_lookup(self, cache):
        reveal = ContactReveal(FakeApollo(), RevealStore(cache))
        body = {"person": {
            "first_name": "Claire",
            "last_name": "Martin",
            "email": "claire.martin@freins-dupont.fr",
            "organization": {"name": "Freins Dupont"},
            "phone_numbers": [{"type": "mobile", "sanitized_number": "+33600000000"}],
        }}

        ack = await reveal.ingest_webhook(body)
        found = await reveal.lookup("claire", "MARTIN", "Freins Dupont")
        missing = await reveal.lookup("Paul", "Durand")

        assert ack == {"success": True, "message": "Webhook processed successfully"}
        assert found["found"] is True
        assert found["phone"] == "+33600000000"
        assert missing["found"] is False

    @pytest.mark.asyncio
    async def test_webhook_without_person_acknowledged(self, cache):
        reveal = ContactReveal(FakeApollo(), RevealStore(cache))

        assert (await reveal.ingest_webhook({}))["success"] is True
        assert await cache.list_keys() == []
