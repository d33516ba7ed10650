"""Import all models so Base.metadata sees every table."""
from social_chat.infrastructure.db.models.connection_request import ConnectionRequestModel
from social_chat.infrastructure.db.models.conversation import ConversationModel
from social_chat.infrastructure.db.models.message import MessageModel
from social_chat.infrastructure.db.models.user import UserModel

__all__ = [
    "ConnectionRequestModel",
    "ConversationModel",
    "MessageModel",
    "UserModel",
]
