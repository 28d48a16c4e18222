"""
Telegram front end for ChatService.

Runs inside the relay server process (started from its lifespan). Updates
are handled concurrently, so one user's bounded wait never holds up
another user's message.
"""

import logging

from telegram import Update
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from agentrelay.agents.catalog import AGENTS
from agentrelay.bot.chat_service import ChatService

log = logging.getLogger(__name__)


def help_text(first_name: str) -> str:
    agents = "\n".join(f"{a.emoji} *{a.name}* - {a.description}" for a in AGENTS)
    return (
        f"👋 Hey {first_name}!\n\n"
        f"Just tell me what you need. I can use these agents on your computer:\n\n"
        f"{agents}"
    )


class TelegramBot:
    def __init__(self, token: str, chat: ChatService):
        self.chat = chat
        self.app = (
            Application.builder()
            .token(token)
            .concurrent_updates(True)
            .build()
        )
        self.app.add_handler(CommandHandler(["start", "help"], self.start_command))
        self.app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self.handle_message))
        self.app.add_error_handler(self.error_handler)

    async def start_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        user = update.effective_user
        if not self.chat.is_authorized(user.id):
            await update.message.reply_text("⛔ Unauthorized.")
            return
        await update.message.reply_text(help_text(user.first_name), parse_mode="Markdown")

    async def handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        user = update.effective_user
        message = update.message
        if not message or not message.text:
            return
        log.info(f"Message from {user.id}: {message.text[:100]}")

        async def send(text: str) -> None:
            await message.reply_text(text)

        await self.chat.handle_message(user.id, message.text, send)

    async def error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        log.error(f"Error: {context.error}", exc_info=context.error)

    async def start(self) -> None:
        await self.app.initialize()
        await self.app.start()
        await self.app.updater.start_polling(allowed_updates=Update.ALL_TYPES)
        log.info("Telegram bot is now polling...")

    async def stop(self) -> None:
        await self.app.updater.stop()
        await self.app.stop()
        await self.app.shutdown()
        log.info("Telegram bot stopped")
