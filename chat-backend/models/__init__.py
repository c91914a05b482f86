from .users import USERS, AuthPrincipal, UserDocument, user_path
from .chat import CHATS, Chat, ChatMember, chat_path, messages_path
from .messages import Message
