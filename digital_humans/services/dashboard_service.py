from typing import Any, Dict
from sqlalchemy.orm import Session
from digital_humans.core.config import settings
from digital_humans.schemas.user import UserResponse
from digital_humans.services.chat_service import ChatService, chat_service
from digital_humans.services.digital_human_service import DigitalHumanService, digital_human_service

class DashboardService:
    def __init__(self, registry: DigitalHumanService = None, chat: ChatService = None):
        self.registry = registry or digital_human_service
        self.chat = chat or chat_service

    def get_dashboard(self, db: Session, user: UserResponse) -> Dict[str, Any]:
        """Everything the dashboard view renders, in one read."""
        user_bots = self.registry.list_for_user(db, user.id)
        return {
            "user": user,
            "bots": {
                "userBots": user_bots,
                "publicBots": self.registry.list_public(db, settings.dashboard_public_limit),
                # list_for_user is already newest-updated first
                "recentBots": user_bots[:settings.dashboard_recent_limit],
            },
            "sessions": self.chat.list_sessions(db, user.id),
        }

dashboard_service = DashboardService()
