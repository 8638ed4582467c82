"""
Unit tests for src/prospecting/normalizer.py

Tests conversion of loosely-typed provider records into domain entities:
- Field coercion (None, lists, whitespace)
- Source URL filtering
- Required-field rejection per entity kind
- Apollo person -> Contact mapping and LinkedIn name matching
"""

import pytest

from src.prospecting.normalizer import (
    PLACEHOLDER,
    clean_website_url,
    coerce_list,
    coerce_str,
    coerce_url_list,
    dedupe_by_name,
    is_valid_email,
    linkedin_matches_name,
    normalize_competitor_analysis,
    normalize_competitor_profile,
    normalize_contact,
    normalize_enterprise,
    normalize_many,
    normalize_market,
    slugify_name,
)


@pytest.fixture
def enterprise_record():
    return {
        "nom_entreprise": "  Freins Dupont  ",
        "site_web": "freins-dupont.fr",
        "description_activite": "Fabricant de systèmes de freinage, usine à Lyon",
        "produits_entreprise": ["étriers", None, "  ", "disques"],
        "potentiel_cgr": {
            "produits_cibles_chez_le_prospect": ["étriers"],
            "produits_cgr_a_proposer": ["ressorts de compression"],
            "argumentaire_approche": "Réduction de coûts",
        },
        "sources": ["https://freins-dupont.fr/a-propos", "pas une url", "ftp://x.fr", "https://freins-dupont.fr/a-propos"],
    }


@pytest.fixture
def apollo_person():
    return {
        "first_name": "Jean",
        "last_name": "Dupont",
        "title": "Directeur des Achats",
        "email": "jean.dupont@freins-dupont.fr",
        "email_status": "verified",
        "linkedin_url": "https://www.linkedin.com/in/jean-dupont-1a2b3c",
        "phone_numbers": [{"sanitized_number": "+33 4 78 00 00 00"}],
        "organization": {
            "name": "Freins Dupont",
            "website_url": "http://www.freins-dupont.fr",
            "industry": "automotive",
        },
    }


# ===== TESTS: Coercion =====

class TestCoercion:
    """Tests for scalar and list coercion helpers."""

    def test_coerce_str(self):
        assert coerce_str("  a  ") == "a"
        assert coerce_str(None) == ""
        assert coerce_str(None, "x") == "x"
        assert coerce_str(42) == "42"
        assert coerce_str({"a": 1}, "d") == "d"

    def test_coerce_list(self):
        assert coerce_list(["a", None, " ", " b "]) == ["a", "b"]
        assert coerce_list("a") == []
        assert coerce_list(None) == []

    def test_coerce_url_list_keeps_absolute_http_only(self):
        urls = coerce_url_list(["https://a.fr", "a.fr", "mailto:x@y.fr", "http://b.fr/p", "https://a.fr"])
        assert urls == ["https://a.fr", "http://b.fr/p"]

    @pytest.mark.parametrize("raw,expected", [
        ("acme.fr", "https://acme.fr"),
        ("https://acme.fr", "https://acme.fr"),
        ("Non communiqué", ""),
        ("N/A", ""),
        (None, ""),
    ])
    def test_clean_website_url(self, raw, expected):
        assert clean_website_url(raw) == expected


# ===== TESTS: Enterprise =====

class TestNormalizeEnterprise:
    """Tests for normalize_enterprise()."""

    def test_full_record(self, enterprise_record):
        enterprise = normalize_enterprise(enterprise_record)
        assert enterprise.name == "Freins Dupont"
        assert enterprise.website == "https://freins-dupont.fr"
        assert enterprise.own_products == ["étriers", "disques"]
        assert enterprise.cgr_potential.proposed_products == ["ressorts de compression"]
        assert enterprise.sources == ["https://freins-dupont.fr/a-propos"]

    def test_defaults_placeholder(self, enterprise_record):
        enterprise = normalize_enterprise(enterprise_record)
        assert enterprise.company_size == PLACEHOLDER
        assert enterprise.current_supplier_estimate == PLACEHOLDER

    def test_missing_potential_object_never_none(self):
        enterprise = normalize_enterprise({"nom_entreprise": "A", "description_activite": "x", "potentiel_cgr": None})
        assert enterprise.cgr_potential.target_products == []

    @pytest.mark.parametrize("field", ["nom_entreprise", "description_activite"])
    def test_rejects_missing_required(self, enterprise_record, field):
        enterprise_record[field] = "   "
        assert normalize_enterprise(enterprise_record) is None

    def test_wire_format_is_camel_case(self, enterprise_record):
        wire = normalize_enterprise(enterprise_record).to_wire()
        assert "activityDescription" in wire
        assert "proposedProducts" in wire["cgrPotential"]


# ===== TESTS: Market opportunity =====

class TestNormalizeMarket:
    """Tests for normalize_market()."""

    def test_accepts_long_justification(self):
        market = normalize_market({
            "nom_marche": "Freinage ferroviaire",
            "justification": "Justification détaillée " * 10,
        })
        assert market.market_name == "Freinage ferroviaire"
        assert market.specific_sub_sector == "Freinage ferroviaire"
        assert market.relevance_level == "moyenne"

    def test_rejects_short_justification(self):
        assert normalize_market({"nom_marche": "X", "justification": "trop court"}) is None

    def test_rejects_missing_name(self):
        assert normalize_market({"justification": "y" * 300}) is None


# ===== TESTS: Competitors =====

class TestNormalizeCompetitors:
    """Tests for competitor analysis and profile normalization."""

    def test_analysis_requires_summary(self):
        assert normalize_competitor_analysis({"produits_services": ["a"]}, "Acme") is None

    def test_analysis(self):
        analysis = normalize_competitor_analysis(
            {"synthese_entreprise": "Leader du ressort", "forces_apparentes": ["prix"], "sources": ["x"]},
            "Acme",
        )
        assert analysis.company_name == "Acme"
        assert analysis.apparent_strengths == ["prix"]
        assert analysis.sources == []

    def test_profile_requires_some_substance(self):
        assert normalize_competitor_profile({"nom_entreprise": "Acme"}) is None

    def test_profile(self):
        profile = normalize_competitor_profile({
            "nom_entreprise": "Ressorts Martin",
            "specialites_produits": ["ressorts de traction"],
            "publications_recentes": [
                {"titre": "Nouvelle usine", "lien": "https://martin.fr/news"},
                {"titre": "", "lien": "https://martin.fr/x"},
                {"titre": "Salon", "lien": "pas un lien"},
            ],
            "contact_info": None,
        })
        assert profile.company_name == "Ressorts Martin"
        assert [p.title for p in profile.recent_publications] == ["Nouvelle usine", "Salon"]
        assert profile.recent_publications[1].link is None
        assert profile.contact_info.executives == []
        assert profile.company_size == "Non spécifiée"


# ===== TESTS: Contact =====

class TestNormalizeContact:
    """Tests for normalize_contact()."""

    def test_apollo_person(self, apollo_person):
        contact = normalize_contact(apollo_person, "Freins Dupont")
        assert contact.position == "Directeur des Achats"
        assert contact.phone == "+33 4 78 00 00 00"
        assert contact.linkedin_verified is True
        assert contact.verified is True
        assert contact.sources[0] == "https://app.apollo.io"
        assert "https://www.linkedin.com/in/jean-dupont-1a2b3c" in contact.sources

    def test_headline_used_when_title_missing(self, apollo_person):
        apollo_person["title"] = None
        apollo_person["headline"] = "Acheteur senior"
        assert normalize_contact(apollo_person).position == "Acheteur senior"

    @pytest.mark.parametrize("field", ["first_name", "last_name", "title"])
    def test_rejects_missing_identity(self, apollo_person, field):
        apollo_person[field] = ""
        assert normalize_contact(apollo_person) is None

    def test_rejects_when_no_channel(self, apollo_person):
        apollo_person["email"] = "invalide"
        apollo_person["phone_numbers"] = []
        apollo_person["linkedin_url"] = "https://www.linkedin.com/company/freins-dupont"
        assert normalize_contact(apollo_person) is None

    def test_placeholder_email_dropped(self, apollo_person):
        apollo_person["email"] = "jean@example.com"
        contact = normalize_contact(apollo_person)
        assert contact.email is None
        assert contact.phone is not None

    def test_locked_email_dropped(self, apollo_person):
        apollo_person["email"] = "email_not_unlocked@domain.com"
        apollo_person["email_status"] = "unavailable"
        contact = normalize_contact(apollo_person)
        assert contact.email is None
        assert contact.verified is False
        assert contact.linkedin_url is not None

    def test_unverified_status_not_marked_verified(self, apollo_person):
        apollo_person["email_status"] = "guessed"
        contact = normalize_contact(apollo_person)
        assert contact.email == "jean.dupont@freins-dupont.fr"
        assert contact.verified is False

    def test_company_defaults_to_organization(self, apollo_person):
        assert normalize_contact(apollo_person).company == "Freins Dupont"


class TestContactHelpers:
    """Tests for slug and email helpers."""

    def test_slugify_name(self):
        assert slugify_name("Hélène Dupré") == "helene-dupre"

    def test_linkedin_matches_name(self):
        assert linkedin_matches_name("https://fr.linkedin.com/in/dupontjean", "Jean", "Dupont")
        assert not linkedin_matches_name("https://linkedin.com/in/marc-durand", "Jean", "Dupont")
        assert not linkedin_matches_name(None, "Jean", "Dupont")

    def test_is_valid_email(self):
        assert is_valid_email("a@b.fr")
        assert not is_valid_email("a@example.com")
        assert not is_valid_email("pas-un-email")
        assert not is_valid_email(None)
        assert not is_valid_email("email_not_unlocked@domain.com")


class TestCollections:
    """Tests for list helpers."""

    def test_normalize_many_drops_rejections(self):
        records = [{"nom_entreprise": "A", "description_activite": "x"}, {"nom_entreprise": "B"}, "texte"]
        assert [e.name for e in normalize_many(records, normalize_enterprise)] == ["A"]

    def test_normalize_many_non_list(self):
        assert normalize_many(None, normalize_enterprise) == []

    def test_dedupe_by_name(self):
        assert dedupe_by_name(["Acme", "acme ", "Beta"], key=lambda s: s) == ["Acme", "Beta"]
