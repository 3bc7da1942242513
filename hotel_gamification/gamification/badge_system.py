"""
Badge System

Static badge catalog plus the evaluator that unlocks badges against
cumulative user stats.

Conditions are declarative rules (see hotel_gamification.models.badge):
- counter_at_least: a counter reached a threshold
- average_at_most / average_at_least: a running average crossed a threshold
  once enough samples exist
- all_of: every nested rule holds

Badges are append-only: once an id is in stats.badges it is never
re-evaluated or removed.
"""

import logging
from typing import Iterable, List, Optional

from hotel_gamification.models.badge import (
    AllOf,
    AverageAtLeast,
    AverageAtMost,
    BadgeCategory,
    BadgeDefinition,
    BadgeRule,
    BadgeTier,
    CounterAtLeast,
)
from hotel_gamification.models.stats import UserStats

logger = logging.getLogger(__name__)


# ============================================
# Badge Catalog
# ============================================

BADGES: List[BadgeDefinition] = [
    # ========== INCIDENTS ==========
    BadgeDefinition(
        id="first_incident",
        name="Premier Signalement",
        description="Signaler votre premier incident",
        icon="🚨",
        category=BadgeCategory.INCIDENTS,
        tier=BadgeTier.BRONZE,
        rule=CounterAtLeast(field="incidents_created", value=1),
    ),
    BadgeDefinition(
        id="incident_resolver",
        name="Résolveur",
        description="Résoudre 10 incidents",
        icon="🛠️",
        category=BadgeCategory.INCIDENTS,
        tier=BadgeTier.BRONZE,
        rule=CounterAtLeast(field="incidents_resolved", value=10),
    ),
    BadgeDefinition(
        id="incident_master",
        name="Maître des Incidents",
        description="Résoudre 50 incidents",
        icon="🏅",
        category=BadgeCategory.INCIDENTS,
        tier=BadgeTier.GOLD,
        rule=CounterAtLeast(field="incidents_resolved", value=50),
    ),
    BadgeDefinition(
        id="crisis_manager",
        name="Gestionnaire de Crise",
        description="Résoudre 5 incidents critiques",
        icon="🔥",
        category=BadgeCategory.INCIDENTS,
        tier=BadgeTier.SILVER,
        rule=CounterAtLeast(field="critical_incidents_resolved", value=5),
    ),
    BadgeDefinition(
        id="quick_resolver",
        name="Éclair",
        description="Temps moyen de résolution sous 30 minutes après 10 incidents",
        icon="⚡",
        category=BadgeCategory.INCIDENTS,
        tier=BadgeTier.GOLD,
        rule=AverageAtMost(
            field="avg_resolution_time",
            value=30,
            sample_field="incidents_resolved",
            min_samples=10,
        ),
        hidden=True,
    ),

    # ========== MAINTENANCE ==========
    BadgeDefinition(
        id="first_maintenance",
        name="Premier Dépannage",
        description="Terminer votre première maintenance",
        icon="🔧",
        category=BadgeCategory.MAINTENANCE,
        tier=BadgeTier.BRONZE,
        rule=CounterAtLeast(field="maintenance_completed", value=1),
    ),
    BadgeDefinition(
        id="maintenance_expert",
        name="Expert Technique",
        description="Terminer 25 maintenances",
        icon="⚙️",
        category=BadgeCategory.MAINTENANCE,
        tier=BadgeTier.SILVER,
        rule=CounterAtLeast(field="maintenance_completed", value=25),
    ),
    BadgeDefinition(
        id="speed_technician",
        name="Technicien Express",
        description="Terminer 10 maintenances avant l'échéance",
        icon="⏱️",
        category=BadgeCategory.MAINTENANCE,
        tier=BadgeTier.GOLD,
        rule=CounterAtLeast(field="quick_maintenance_completed", value=10),
    ),

    # ========== QUALITY ==========
    BadgeDefinition(
        id="quality_inspector",
        name="Inspecteur Qualité",
        description="Effectuer 10 contrôles qualité",
        icon="📋",
        category=BadgeCategory.QUALITY,
        tier=BadgeTier.BRONZE,
        rule=CounterAtLeast(field="quality_checks_completed", value=10),
    ),
    BadgeDefinition(
        id="perfectionist",
        name="Perfectionniste",
        description="Obtenir un score supérieur à 90% sur 10 contrôles",
        icon="💯",
        category=BadgeCategory.QUALITY,
        tier=BadgeTier.SILVER,
        rule=CounterAtLeast(field="high_quality_checks", value=10),
    ),
    BadgeDefinition(
        id="quality_champion",
        name="Champion de la Qualité",
        description="Score moyen d'au moins 90% sur 20 contrôles",
        icon="🏆",
        category=BadgeCategory.QUALITY,
        tier=BadgeTier.GOLD,
        rule=AverageAtLeast(
            field="avg_quality_score",
            value=90,
            sample_field="quality_checks_completed",
            min_samples=20,
        ),
        hidden=True,
    ),

    # ========== LOST ITEMS ==========
    BadgeDefinition(
        id="lost_and_found",
        name="Objets Trouvés",
        description="Enregistrer 10 objets trouvés",
        icon="🧳",
        category=BadgeCategory.OBJECTS,
        tier=BadgeTier.BRONZE,
        rule=CounterAtLeast(field="lost_items_registered", value=10),
    ),
    BadgeDefinition(
        id="honest_finder",
        name="Restitution",
        description="Rendre 10 objets à leurs propriétaires",
        icon="🤝",
        category=BadgeCategory.OBJECTS,
        tier=BadgeTier.SILVER,
        rule=CounterAtLeast(field="lost_items_returned", value=10),
    ),

    # ========== PROCEDURES ==========
    BadgeDefinition(
        id="procedure_author",
        name="Rédacteur",
        description="Créer 5 procédures",
        icon="✍️",
        category=BadgeCategory.PROCEDURES,
        tier=BadgeTier.SILVER,
        rule=CounterAtLeast(field="procedures_created", value=5),
    ),
    BadgeDefinition(
        id="knowledge_seeker",
        name="Curieux",
        description="Lire 25 procédures",
        icon="📚",
        category=BadgeCategory.PROCEDURES,
        tier=BadgeTier.BRONZE,
        rule=CounterAtLeast(field="procedures_read", value=25),
    ),
    BadgeDefinition(
        id="procedure_validator",
        name="Validateur",
        description="Valider 10 procédures",
        icon="✅",
        category=BadgeCategory.PROCEDURES,
        tier=BadgeTier.BRONZE,
        rule=CounterAtLeast(field="procedures_validated", value=10),
    ),

    # ========== GENERAL ==========
    BadgeDefinition(
        id="regular",
        name="Habitué",
        description="Se connecter 7 jours consécutifs",
        icon="📆",
        category=BadgeCategory.GENERAL,
        tier=BadgeTier.BRONZE,
        rule=CounterAtLeast(field="longest_streak", value=7),
    ),
    BadgeDefinition(
        id="dedicated",
        name="Assidu",
        description="Se connecter 30 jours consécutifs",
        icon="🗓️",
        category=BadgeCategory.GENERAL,
        tier=BadgeTier.GOLD,
        rule=CounterAtLeast(field="longest_streak", value=30),
        hidden=True,
    ),
    BadgeDefinition(
        id="team_player",
        name="Esprit d'Équipe",
        description="Aider 10 collègues",
        icon="🫱",
        category=BadgeCategory.GENERAL,
        tier=BadgeTier.SILVER,
        rule=CounterAtLeast(field="help_provided", value=10),
    ),
    BadgeDefinition(
        id="appreciated",
        name="Apprécié",
        description="Recevoir 10 remerciements",
        icon="💐",
        category=BadgeCategory.GENERAL,
        tier=BadgeTier.SILVER,
        rule=CounterAtLeast(field="thanks_received", value=10),
    ),

    # ========== SPECIAL ==========
    BadgeDefinition(
        id="goal_getter",
        name="Objectifs Atteints",
        description="Compléter 4 défis hebdomadaires",
        icon="🎯",
        category=BadgeCategory.SPECIAL,
        tier=BadgeTier.SILVER,
        rule=CounterAtLeast(field="weekly_goals_completed", value=4),
    ),
    BadgeDefinition(
        id="all_rounder",
        name="Polyvalent",
        description="Contribuer à chaque module du back office",
        icon="🌈",
        category=BadgeCategory.SPECIAL,
        tier=BadgeTier.GOLD,
        rule=AllOf(rules=[
            CounterAtLeast(field="incidents_resolved", value=1),
            CounterAtLeast(field="maintenance_completed", value=1),
            CounterAtLeast(field="quality_checks_completed", value=1),
            CounterAtLeast(field="lost_items_returned", value=1),
            CounterAtLeast(field="procedures_validated", value=1),
        ]),
        hidden=True,
    ),
    BadgeDefinition(
        id="level_10",
        name="Niveau 10",
        description="Atteindre le niveau 10",
        icon="🔮",
        category=BadgeCategory.SPECIAL,
        tier=BadgeTier.GOLD,
        rule=CounterAtLeast(field="level", value=10),
    ),
]

BADGES_BY_ID = {badge.id: badge for badge in BADGES}


# ============================================
# Rule Evaluation
# ============================================

def evaluate_rule(rule: BadgeRule, stats: UserStats) -> bool:
    """Interpret a declarative badge rule against stats"""
    if isinstance(rule, CounterAtLeast):
        value = stats.value_of(rule.field)
        return value is not None and value >= rule.value

    if isinstance(rule, (AverageAtMost, AverageAtLeast)):
        samples = stats.value_of(rule.sample_field)
        average = stats.value_of(rule.field)
        if samples is None or average is None or samples < rule.min_samples:
            return False
        if isinstance(rule, AverageAtMost):
            return average <= rule.value
        return average >= rule.value

    if isinstance(rule, AllOf):
        return bool(rule.rules) and all(evaluate_rule(r, stats) for r in rule.rules)

    logger.warning(f"Unknown badge rule kind: {getattr(rule, 'kind', rule)!r}")
    return False


def evaluate_badges(
    stats: UserStats,
    catalog: Optional[Iterable[BadgeDefinition]] = None,
) -> List[BadgeDefinition]:
    """
    Unlock every badge whose rule now holds

    Mutates stats.badges (append only) and returns the newly unlocked badges
    in catalog order.
    """
    catalog = BADGES if catalog is None else catalog
    unlocked = set(stats.badges)
    newly_unlocked = []

    for badge in catalog:
        if badge.id in unlocked:
            continue
        if evaluate_rule(badge.rule, stats):
            unlocked.add(badge.id)
            stats.badges.append(badge.id)
            newly_unlocked.append(badge)
            logger.info(f"User {stats.user_id} unlocked badge: {badge.id} ({badge.name})")

    return newly_unlocked


def get_visible_badges(
    stats: UserStats,
    catalog: Optional[Iterable[BadgeDefinition]] = None,
) -> List[BadgeDefinition]:
    """Badges already unlocked plus visible ones whose rule currently holds"""
    catalog = BADGES if catalog is None else catalog
    owned = set(stats.badges)
    return [
        badge for badge in catalog
        if badge.id in owned or (not badge.hidden and evaluate_rule(badge.rule, stats))
    ]


def get_badges_by_category(
    badges: Iterable[BadgeDefinition],
    category: BadgeCategory,
) -> List[BadgeDefinition]:
    return [badge for badge in badges if badge.category == category]
