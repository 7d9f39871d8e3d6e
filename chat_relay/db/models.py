"""Database table name constants and type references."""

# Table names as they exist in the Supabase project
CONVERSATIONS = "chats"
MESSAGES = "messages"

# Foreign key from messages to chats
CONVERSATION_FK = "chat_id"

DEFAULT_CONVERSATION_TITLE = "New conversation"

# Role constants
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
