"""
Prompts for the prospecting searches.

All prompts are French: the provider answers in the language it is asked in,
and the JSON field names below are what the normalizer reads back.

Features:
- Enterprise discovery (web-search deep research, manufacturers only)
- Market brainstorming (niche-targeted or exploratory)
- Competitor analysis (one named competitor)
- Competitor identification (manufacturers matching region/product/volume)
- Contact pitch (one short personalised opener)
"""

import math
from typing import List, Optional

from src.prospecting.catalog import PRODUCT_LABELS, VOLUME_LABELS


# ===== Enterprise discovery =====

ENTERPRISE_SYSTEM_PROMPT = """Tu es un expert en intelligence économique spécialisé dans l'identification de prospects FABRICANTS pour CGR International, fabricant français de composants mécaniques industriels.

MISSION: Identifier le nombre d'entreprises FABRICANTES demandé qui possèdent des USINES DE PRODUCTION et qui conçoivent/fabriquent des produits finis intégrant des composants mécaniques.

EXPERTISE CGR DISPONIBLE:
- Ressorts (fil, plat, torsion) haute précision
- Pièces découpées de précision
- Formage de tubes
- Assemblages automatisés
- Mécatronique
- Injection plastique

ATTENTION: une entreprise qui fabrique des ressorts est CONCURRENTE de CGR et doit être EXCLUE.

RÈGLES DE CIBLAGE:
- FABRICANTS UNIQUEMENT: usines identifiées (ville, pays), conception et fabrication de produits finis
- Si l'entreprise fait partie d'un GROUPE: nom du groupe, maison-mère, autres filiales
- Produits SPÉCIFIQUES fabriqués dans chaque usine

EXCLURE ABSOLUMENT:
- Revendeurs, distributeurs, négociants, importateurs, grossistes
- Installateurs, intégrateurs, bureaux d'études
- Entreprises de services (maintenance, réparation, SAV)
- Fabricants de ressorts, pièces découpées, tubes (concurrents directs CGR)
- Entreprises nommées "CGR" ou similaires
- Filiales commerciales sans production

SOURCES PRIORITAIRES:
- Annuaires industriels (KOMPASS, EUROPAGES)
- Registres du commerce (societe.com, verif.com, Companies House)
- Sites web d'entreprises (sections "Nos usines", "Production")
- Pages entreprise LinkedIn

ARGUMENTAIRE D'APPROCHE (minimum 250 mots) détaillant: raison sociale, localisation de chaque usine, structure du groupe, produits fabriqués, besoins en composants CGR, volumes estimés, fournisseurs actuels probables.

RÉPONSE JSON OBLIGATOIRE avec exactement cette structure:
{
  "enterprises": [
    {
      "nom_entreprise": "Raison sociale complète officielle",
      "site_web": "URL officielle",
      "description_activite": "Description détaillée de l'activité de FABRICATION uniquement",
      "produits_entreprise": ["Produit 1 fabriqué", "Produit 2 fabriqué"],
      "potentiel_cgr": {
        "produits_cibles_chez_le_prospect": ["Composants utilisés dans produit 1"],
        "produits_cgr_a_proposer": ["Uniquement les produits CGR spécifiés par l'utilisateur"],
        "argumentaire_approche": "Argumentaire détaillé, minimum 250 mots"
      },
      "fournisseur_actuel_estimation": "Fournisseurs probables",
      "sources": ["https://source1", "https://source2", "https://source3"],
      "taille_entreprise": "Taille exacte ou estimée",
      "volume_pieces_estime": "Volume compatible avec les spécifications",
      "zone_geographique": "Zone géographique précise avec pays"
    }
  ]
}

Retourne UNIQUEMENT le JSON."""


def company_size_guidance(size: str) -> str:
    """Targeting hints for the requested company size."""
    if size == "PME":
        return (
            "- Cibler prioritairement des PME FABRICANTES (50-250 salariés)\n"
            "- Si insuffisant: inclure des ETI avec production similaire"
        )
    if size == "ETI":
        return (
            "- Cibler prioritairement des ETI FABRICANTES (250-5000 salariés)\n"
            "- Si insuffisant: inclure PME et grandes entreprises"
        )
    if size == "Grande entreprise":
        return (
            "- Cibler prioritairement des grandes entreprises FABRICANTES (5000+ salariés)\n"
            "- Si insuffisant: inclure des ETI avec volumes importants"
        )
    return (
        "- Toutes tailles d'entreprises FABRICANTES acceptées\n"
        "- Priorité aux entreprises avec volumes compatibles"
    )


def build_enterprise_user_prompt(
    sectors: List[str],
    zones: List[str],
    company_size: str,
    products: List[str],
    keywords: str,
    factories: List[str],
    exclusions: List[str],
    count: int,
) -> str:
    """
    Build the enterprise discovery prompt.

    The first sector is the primary one; the others are allowed extensions.
    The cascade asks for ceil(0.7 * count) strict matches before widening.
    """
    primary = sectors[0]
    extra_sectors = (
        f"**Secteurs additionnels autorisés:** {', '.join(sectors[1:])}\n" if len(sectors) > 1 else ""
    )
    zone_text = ", ".join(zones)
    product_text = ", ".join(products)
    first_step_goal = math.ceil(count * 0.7)

    return f"""RECHERCHE INTENSIVE: EXACTEMENT {count} entreprises FABRICANTES pour CGR International

Tu DOIS retourner AU MOINS {count} entreprises FABRICANTES qualifiées. Si nécessaire, élargis la recherche géographiquement ou sectoriellement.

**Secteur d'activité PRINCIPAL:** {primary}
{extra_sectors}- Focus prioritaire sur les FABRICANTS du secteur "{primary}"
- Entreprises qui conçoivent ET fabriquent des produits, avec usines localisées

**Zone géographique PRIORITAIRE:** {zone_text}
- Proximité avec les usines CGR: {', '.join(factories)} (avantage mais pas obligatoire)

**Taille d'entreprise PRÉFÉRÉE:** {company_size}
{company_size_guidance(company_size)}

**Produits CGR AUTORISÉS (AUCUN AUTRE):** {product_text}
Ne proposer QUE ces produits dans "produits_cgr_a_proposer".

**Mots-clés spécifiques:** {keywords}

**Exclusions absolues:** {', '.join(exclusions)}
- Éviter ces entreprises et leurs filiales

**STRATÉGIE EN CASCADE:**
1. Secteur "{primary}" + Zone "{zone_text}" + Taille "{company_size}": minimum {first_step_goal} entreprises
2. Si insuffisant: secteurs connexes dans la même zone, même secteur dans les zones adjacentes
3. Si encore insuffisant: sous-secteurs spécialisés, zones plus larges

**VALIDATION ANTI-REVENDEUR:** usines identifiées, produits propres, activités R&D, pas de distribution.

Sources multiples et récentes (minimum 3 par entreprise, URLs complètes).

RETOURNE UNIQUEMENT LE JSON DEMANDÉ avec {count} entreprises minimum."""


# ===== Market brainstorming =====

BRAINSTORMING_SYSTEM_PROMPT = """Tu es un expert analyste stratégique pour CGR International, fabricant français de composants mécaniques de haute précision.

MISSION: Identifier des opportunités de marché ULTRA-SPÉCIFIQUES et PERTINENTES basées sur:
1. Le secteur général fourni (ex: Automobile, Médical, Aéronautique)
2. La niche précise mentionnée (ex: "sièges automobiles", "dispositifs d'injection")

RÈGLE D'OR DE PERTINENCE:
- Si l'utilisateur a spécifié une NICHE, concentre-toi EXCLUSIVEMENT sur cette niche
- N'élargis PAS à d'autres sous-secteurs de l'industrie générale

Si AUCUNE niche n'est spécifiée, utilise tes recherches en temps réel pour identifier les SOUS-SECTEURS émergents et prometteurs, à forte croissance et peu saturés.

EXPERTISE CGR:
- Ressorts de précision (fil, plat, torsion)
- Pièces découpées haute précision
- Formage de tubes
- Assemblages automatisés
- Mécatronique
- Injection plastique

FORMAT JSON REQUIS:
{
  "markets": [
    {
      "nom_marche": "Nom très spécifique du marché de niche",
      "sous_secteur_specifique": "La niche exacte",
      "justification": "Analyse détaillée 200+ mots: tendances récentes, besoins spécifiques, pertinence CGR, données chiffrées",
      "produits_cgr_applicables": ["Produits CGR applicables"],
      "exemples_entreprises": ["3-5 entreprises réelles de la niche"],
      "taille_entreprises_cibles": "Taille appropriée",
      "volume_pieces_estime": "Estimation basée sur données récentes",
      "niveau_pertinence": "haute|moyenne|exploratoire"
    }
  ],
  "sources_perplexity": ["URLs des sources utilisées"],
  "analyse_tendances": "Résumé des tendances actuelles"
}

Ne propose PAS d'opportunités génériques ni de marchés saturés. Cite des entreprises RÉELLES."""


def build_brainstorming_user_prompt(
    general_sector: str,
    niche: Optional[str],
    products: List[str],
    zones: List[str],
    company_size: str,
    exclusions: List[str],
    count: int,
) -> str:
    """Niche-targeted prompt when a free-text sector is given, exploratory otherwise."""
    product_text = ", ".join(products)
    zone_text = ", ".join(zones)

    if niche:
        return f"""RECHERCHE ULTRA-CIBLÉE - NICHE SPÉCIFIQUE

**CONTEXTE:**
- Secteur général: {general_sector}
- NICHE PRÉCISE À EXPLORER: "{niche}"
- Produits CGR disponibles: {product_text}
- Zones géographiques: {zone_text}
- Taille d'entreprise cible: {company_size}

**MISSION:**
Identifie EXACTEMENT {count} opportunités de marché EXCLUSIVEMENT dans la niche "{niche}".
Ne propose PAS d'applications dans d'autres sous-secteurs de {general_sector}.

1. Tendances RÉCENTES dans "{niche}"
2. Besoins spécifiques non satisfaits
3. Entreprises RÉELLES actives dans "{niche}"
4. Où les produits CGR ({product_text}) apportent de la valeur

**CLIENTS À ÉVITER:** {', '.join(exclusions)}

Retourne uniquement le JSON demandé."""

    return f"""RECHERCHE EXPLORATOIRE - IDENTIFICATION DE NICHES

**CONTEXTE:**
- Secteur général: {general_sector}
- Produits CGR disponibles: {product_text}
- Zones géographiques: {zone_text}
- Taille d'entreprise cible: {company_size}

**MISSION:**
Identifie EXACTEMENT {count} SOUS-SECTEURS/NICHES prometteuses dans {general_sector}, à forte croissance récente, avec des besoins en composants de précision et peu de saturation concurrentielle, où les produits CGR ({product_text}) sont pertinents.

**CLIENTS À ÉVITER:** {', '.join(exclusions)}

Propose des niches ACTIONNABLES, pas des secteurs généraux.
Retourne uniquement le JSON demandé."""


# ===== Competitor analysis =====

COMPETITOR_ANALYSIS_SYSTEM_PROMPT = """Expert analyste concurrentiel pour l'industrie mécanique et des composants industriels.

MISSION: Analyser en profondeur un concurrent de CGR International (fabricant de ressorts et composants mécaniques).

SOURCES À CONSULTER: site web officiel, rapports annuels, actualités récentes, communiqués de presse, profils LinkedIn des dirigeants, catalogues produits.

RÉPONSE JSON OBLIGATOIRE:
{
  "analysis": {
    "synthese_entreprise": "Analyse détaillée 200+ mots",
    "produits_services": ["...", "..."],
    "marches_cibles": ["...", "..."],
    "entreprises_clientes": ["...", "..."],
    "forces_apparentes": ["...", "..."],
    "faiblesses_potentielles": ["...", "..."],
    "strategie_communication": "Analyse du positionnement 150+ mots",
    "sources": ["url1", "url2"]
  }
}"""


def build_competitor_analysis_user_prompt(competitor_name: str) -> str:
    return f"""Analyse concurrentielle approfondie de "{competitor_name}", concurrent de CGR International.

**Contexte CGR International:**
- Fabricant français de ressorts industriels et composants mécaniques
- Spécialités: ressorts fil/plat, pièces découpées, formage tubes, assemblages
- Marchés: automobile, aéronautique, médical, industrie
- Positionnement: qualité, précision, innovation, co-développement

**Analyse requise pour {competitor_name}:**
1. Profil entreprise: historique, taille, implantations, effectifs, CA
2. Offre produits: gammes, spécialités, innovations récentes
3. Positionnement marché: segments, clients types, géographie
4. Stratégie commerciale: arguments de vente, différenciation
5. Forces concurrentielles face à CGR
6. Vulnérabilités exploitables par CGR
7. Communication: messages clés, stratégie digitale

Retourne uniquement le JSON demandé."""


# ===== Competitor identification =====

IDENTIFICATION_SYSTEM_PROMPT = """Vous êtes un analyste industriel expert, spécialisé dans l'identification de fabricants de composants mécaniques. Votre mission est de trouver des concurrents directs pour CGR International.

**RÈGLE D'OR ABSOLUE:**
IDENTIFIER UNIQUEMENT DES **FABRICANTS** (ENTREPRISES POSSÉDANT LEURS PROPRES USINES).
- EXCLURE: distributeurs, revendeurs, fournisseurs de matières premières, intégrateurs sans usine, bureaux d'études purs.
- Valider le statut de fabricant par des preuves sur le site web ("nos usines", "sites de production", "manufacturing facilities").

**CONTEXTE CGR INTERNATIONAL:**
- Fabricant français de ressorts industriels et composants mécaniques (ressorts fil/feuillard, découpage, formage de tubes, assemblages).
- Secteurs: automobile, aéronautique, médical, ferroviaire.
- Production: petites, moyennes et grandes séries.

**FORMAT DE RÉPONSE:** UNIQUEMENT un objet JSON valide, sans texte avant ou après.

{
  "analysis": {
    "competitors": [
      {
        "nom_entreprise": "Nom précis du fabricant",
        "presence_geographique": ["Région du siège", "Pays des usines"],
        "marches_cibles": ["Automobile", "Aéronautique"],
        "taille_entreprise": "PME|ETI|Grande entreprise",
        "ca_estime": "Chiffre d'affaires estimé",
        "effectifs_estime": "Effectifs estimés",
        "specialites_produits": ["Ressorts de précision"],
        "type_production": ["petite série", "grande série"],
        "publications_recentes": [{"titre": "", "date": "", "source": "", "lien": "", "type": "communique|article|rapport|innovation"}],
        "actualites_recentes": [{"titre": "", "date": "", "source": "", "lien": "", "type": "croissance|partenariat|innovation|acquisition|recrutement", "impact_strategique": ""}],
        "forces_concurrentielles": ["Statut de fabricant confirmé"],
        "positionnement_marche": "Fabricant direct positionné sur...",
        "site_web": "https://www.concurrent.com",
        "contact_info": {"adresse": "", "telephone": "", "email": "", "dirigeants": []},
        "sources": ["https://www.concurrent.com/about-us"]
      }
    ],
    "sources_globales": ["https://www.kompass.com"]
  }
}"""


def build_identification_user_prompt(
    region: str,
    product: str,
    volume: str,
    count: int,
    sectors: Optional[List[str]] = None,
) -> str:
    sector_text = ", ".join(sectors) if sectors else "tous secteurs industriels"
    return f"""Analyse concurrentielle pour CGR International.

**CRITÈRES DE RECHERCHE IMPÉRATIFS:**
- Régions géographiques: {region}
- Produits fabriqués: {PRODUCT_LABELS.get(product, product)}
- Types de production maîtrisés: {VOLUME_LABELS.get(volume, volume)}
- Secteurs cibles: {sector_text}

**MISSION:**
1. Identifier uniquement les fabricants directs (usines) correspondant à ces critères.
2. Confirmer pour chaque entreprise qu'elle est un fabricant et non un revendeur.
3. Collecter des informations factuelles et récentes.
4. Remplir la structure JSON pour les {count} concurrents les plus pertinents.

Fournir la réponse au format JSON strict, sans commentaire."""


# ===== Contact pitch =====

PITCH_SYSTEM_PROMPT = """Tu rédiges des messages d'approche B2B pour CGR International, fabricant français de ressorts et composants mécaniques de précision.

Règles:
- 2 phrases maximum, vouvoiement, ton professionnel et direct
- Mentionner le poste de la personne et son entreprise
- Relier les composants CGR (ressorts, pièces découpées, assemblages) à son métier
- Terminer par une proposition d'échange courte
- Retourner UNIQUEMENT le texte du message"""


def build_pitch_user_prompt(
    first_name: str,
    position: str,
    organization: str,
    industry: str = "",
    matched_roles: Optional[List[str]] = None,
) -> str:
    lines = [
        f"Prénom: {first_name}",
        f"Poste: {position}",
        f"Entreprise: {organization}",
    ]
    if industry:
        lines.append(f"Secteur: {industry}")
    if matched_roles:
        lines.append(f"Rôle ciblé: {', '.join(matched_roles)}")
    return "\n".join(lines)
