"""
Unit tests for src/prospecting/scoring.py

Tests the additive enterprise scoring rules, clamping, half-up rounding,
and the backfill policy of rank_prospects().
"""

import pytest

from src.prospecting.models import CgrPotential, Enterprise
from src.prospecting.scoring import (
    ScoringWeights,
    is_distributor,
    rank_prospects,
    round_score,
    score_enterprise,
    score_stats,
)


def make_enterprise(name="Acme", targets=0, proposed=0, website="", description="Société", **kwargs):
    return Enterprise(
        name=name,
        website=website,
        activity_description=description,
        cgr_potential=CgrPotential(
            target_products=[f"cible {i}" for i in range(targets)],
            proposed_products=[f"ressort {i}" for i in range(proposed)],
            approach_argument=kwargs.pop("argument", ""),
        ),
        **kwargs,
    )


# ===== TESTS: Rounding =====

class TestRoundScore:

    def test_half_up(self):
        assert round_score(2.25) == 2.3
        assert round_score(2.24) == 2.2

    def test_integer(self):
        assert round_score(3.0) == 3.0


# ===== TESTS: Scoring rules =====

class TestScoreEnterprise:
    """Tests for score_enterprise()."""

    def test_empty_enterprise_scores_zero(self):
        assert score_enterprise(make_enterprise()) == 0.0

    def test_targets_products_and_website(self):
        enterprise = make_enterprise(targets=1, proposed=1, website="https://acme.fr")
        assert score_enterprise(enterprise) == 2.1

    def test_target_tiers(self):
        assert score_enterprise(make_enterprise(targets=2)) == 2.0
        assert score_enterprise(make_enterprise(targets=7)) == 3.0

    def test_proposed_products_capped(self):
        assert score_enterprise(make_enterprise(proposed=10)) == 2.5

    def test_own_products_capped(self):
        assert score_enterprise(make_enterprise(own_products=["a"] * 10)) == 1.5

    def test_supplier_tiers(self):
        assert score_enterprise(make_enterprise(current_supplier_estimate="Non spécifié")) == 0.0
        assert score_enterprise(make_enterprise(current_supplier_estimate="Lesjöfors")) == 0.2
        multi = "Lesjöfors, Vulcan Spring, Ressorts Masselin"
        assert score_enterprise(make_enterprise(current_supplier_estimate=multi)) == 1.0

    def test_sources_need_three(self):
        two = make_enterprise(sources=["https://a.fr", "https://b.fr"])
        three = make_enterprise(sources=["https://a.fr", "https://b.fr", "https://c.fr"])
        assert score_enterprise(two) == 0.0
        assert score_enterprise(three) == 0.5

    def test_argument_tiers(self):
        short = "Argument " * 10
        assert score_enterprise(make_enterprise(argument=short)) == 0.5
        rich = "Leur usine de Lyon assemble des ressorts de compression pour freins. " * 7
        assert score_enterprise(make_enterprise(argument=rich)) == 2.5

    def test_rnd_bonus(self):
        assert score_enterprise(make_enterprise(argument="Bureau d'études")) == 0.5

    def test_distributor_penalty_applied_last(self):
        enterprise = make_enterprise(
            targets=1, proposed=1, website="https://acme.fr", description="Distributeur de pièces",
        )
        assert is_distributor(enterprise)
        assert score_enterprise(enterprise) == 0.6

    def test_clamped_to_zero(self):
        assert score_enterprise(make_enterprise(description="Grossiste")) == 0.0

    def test_clamped_to_ten(self):
        rich = "Leur usine de Lyon assemble des ressorts et pièces, avec un bureau d'études intégré. " * 6
        enterprise = make_enterprise(
            targets=3,
            proposed=4,
            website="https://acme.fr",
            argument=rich,
            own_products=["a", "b", "c", "d", "e", "f"],
            current_supplier_estimate="Lesjöfors, Vulcan Spring, Ressorts Masselin",
            sources=["https://a.fr", "https://b.fr", "https://c.fr"],
            description="Fabricant de systèmes de freinage. " * 8,
        )
        assert score_enterprise(enterprise) == 10.0

    def test_custom_weights(self):
        weights = ScoringWeights(website_bonus=1.0)
        assert score_enterprise(make_enterprise(website="https://acme.fr"), weights) == 1.0


# ===== TESTS: Ranking =====

class TestRankProspects:
    """Tests for rank_prospects() selection and backfill."""

    @pytest.fixture
    def enterprises(self):
        return [
            make_enterprise("E", targets=1),                          # 1.0
            make_enterprise("C", targets=2),                          # 2.0
            make_enterprise("A", targets=3, proposed=1),              # 3.8
            make_enterprise("D", targets=2, website="https://d.fr"),  # 2.3
            make_enterprise("B", targets=3),                          # 3.0
        ]

    def test_backfills_when_too_few_good(self, enterprises):
        prospects = rank_prospects(enterprises, requested_count=5)
        assert [p.company for p in prospects] == ["A", "B", "D", "C"]

    def test_no_backfill_when_enough_good(self, enterprises):
        prospects = rank_prospects(enterprises, requested_count=2)
        assert [p.company for p in prospects] == ["A", "B"]

    def test_stable_for_equal_scores(self):
        enterprises = [make_enterprise(n, targets=3) for n in ("X", "Y", "Z")]
        assert [p.company for p in rank_prospects(enterprises, 3)] == ["X", "Y", "Z"]

    def test_projection(self, enterprises):
        prospect = rank_prospects(enterprises, 1, requested_size="PME")[0]
        assert prospect.size == "PME"
        assert prospect.address == "À identifier"
        assert prospect.cgr_data.proposed_products == ["ressort 0"]
        assert prospect.to_wire()["cgrData"]["proposedProducts"] == ["ressort 0"]

    def test_empty(self):
        assert rank_prospects([], 5) == []


class TestScoreStats:

    def test_empty(self):
        assert score_stats([]) == {"average": 0, "highest": 0, "lowest": 0}

    def test_stats(self):
        prospects = rank_prospects(
            [make_enterprise("A", targets=3, proposed=1), make_enterprise("B", targets=3)], 2
        )
        assert score_stats(prospects) == {"average": 3.4, "highest": 3.8, "lowest": 3.0}
