"""Chat front ends: the platform-neutral ChatService and its Telegram adapter."""
