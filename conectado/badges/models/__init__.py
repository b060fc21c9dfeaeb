from conectado.badges.models.badge import Badge, BadgeRule, UserBadge

__all__ = ["Badge", "BadgeRule", "UserBadge"]
