import asyncio
import json
import logging
import os
import time
from dotenv import load_dotenv  # Load environment variables
from telegram import Update, InlineKeyboardButton, InlineKeyboardMarkup
from telegram.ext import Application, CommandHandler, CallbackQueryHandler, MessageHandler, filters, ContextTypes
from database import create_cache
from draw_controller import DrawController, READY, RESOLVED
from entries import InvalidData, entry_counts
from leaderboard_client import LeaderboardClient, LeaderboardError, parse_id_list
from wheel_renderer import DEFAULT_FRAME_MS, draw_wheel, image_to_bytes, save_spin_gif

load_dotenv()

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
logger = logging.getLogger(__name__)
# Reduce APScheduler and HTTP noise
logging.getLogger("apscheduler").setLevel(logging.WARNING)
logging.getLogger("urllib3").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

DAYS_PER_ROW = 5
MAX_UPLOAD_BYTES = 5 * 1024 * 1024


def days_keyboard(days):
    """One button per day, DAYS_PER_ROW to a row"""
    keyboard = []
    for i in range(0, len(days), DAYS_PER_ROW):
        keyboard.append([
            InlineKeyboardButton(f"Day {day}", callback_data=f"day_{day}")
            for day in days[i:i + DAYS_PER_ROW]
        ])
    keyboard.append([InlineKeyboardButton("Back to Menu", callback_data="back_to_menu")])
    return InlineKeyboardMarkup(keyboard)


def wheel_keyboard(controller):
    keyboard = []
    if controller.state == READY:
        keyboard.append([InlineKeyboardButton("Spin", callback_data="spin")])
    elif controller.state == RESOLVED:
        keyboard.append([InlineKeyboardButton("Spin Again", callback_data="spin_again")])
    if controller.entries:
        keyboard.append([InlineKeyboardButton("Entries", callback_data="entries")])
    keyboard.append([InlineKeyboardButton("Change Day", callback_data="change_day")])
    return InlineKeyboardMarkup(keyboard)


def entries_text(controller):
    counts = entry_counts(controller.entries)
    if not counts:
        return f"Day {controller.day}: no entries."
    lines = [f"Day {controller.day} entries ({len(controller.entries)} total):", ""]
    for name, count in counts:
        lines.append(f"• {name}: {count} entr{'ies' if count > 1 else 'y'}")
    return "\n".join(lines)


class RaffleWheelBot:
    def __init__(self, client=None):
        self.client = client or self._create_client()
        self.ADMIN_IDS = parse_id_list(os.getenv('ADMIN_IDS', ''))
        self.RAFFLE_TITLE = os.getenv('RAFFLE_TITLE', 'Advent of Code Raffle')
        self.FRAME_MS = DEFAULT_FRAME_MS

    def _create_client(self):
        try:
            client = LeaderboardClient()
        except ValueError as e:
            logger.warning(f"Live leaderboard fetch disabled: {e}")
            return None
        try:
            client.cache = create_cache()
        except Exception as e:
            logger.error(f"Leaderboard cache unavailable, fetching without it: {e}")
        return client

    async def shutdown(self, application: Application):
        """Release the leaderboard cache connection when the bot stops"""
        if self.client is not None and self.client.cache is not None:
            self.client.cache.close_connection()

    def _is_allowed(self, user_id):
        # Without configured admins anyone may run the draw
        return not self.ADMIN_IDS or user_id in self.ADMIN_IDS

    def _controller(self, context: ContextTypes.DEFAULT_TYPE) -> DrawController:
        controller = context.chat_data.get("controller")
        if controller is None:
            controller = DrawController()
            context.chat_data["controller"] = controller
        return controller

    def _menu_markup(self):
        keyboard = [
            [InlineKeyboardButton("Load Leaderboard", callback_data="load")],
            [InlineKeyboardButton("Refresh Leaderboard", callback_data="refresh")],
            [InlineKeyboardButton("Choose Day", callback_data="change_day")],
        ]
        return InlineKeyboardMarkup(keyboard)

    def _menu_text(self, first_name):
        return f"""
{self.RAFFLE_TITLE}

Hi {first_name}! Every star earned on a day is one entry on that day's wheel.

Load the leaderboard, or send a leaderboard .json file, then pick a day and spin!
        """

    async def start(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /start command"""
        user = update.effective_user
        await update.message.reply_text(self._menu_text(user.first_name), reply_markup=self._menu_markup())

    async def days_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /days command"""
        controller = self._controller(context)
        days = controller.available_days()
        if not days:
            await update.message.reply_text("No leaderboard loaded yet. Use /start to load one.")
            return
        await update.message.reply_text("Pick a day:", reply_markup=days_keyboard(days))

    async def button_handler(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle button callbacks"""
        query = update.callback_query
        await query.answer()

        if not self._is_allowed(query.from_user.id):
            await query.message.reply_text("Access denied.")
            return

        controller = self._controller(context)

        if query.data == "load":
            await self.load_leaderboard(query, controller, force=False)
        elif query.data == "refresh":
            await self.load_leaderboard(query, controller, force=True)
        elif query.data == "change_day":
            await self.show_days(query, controller)
        elif query.data.startswith("day_"):
            day = int(query.data.split("_")[1])
            await self.select_day(query, controller, day)
        elif query.data == "spin":
            await self.spin(query, controller)
        elif query.data == "spin_again":
            controller.dismiss()
            await self.spin(query, controller)
        elif query.data == "entries":
            await query.message.reply_text(entries_text(controller))
        elif query.data == "back_to_menu":
            await self._respond(query, self._menu_text(query.from_user.first_name), self._menu_markup())

    async def load_leaderboard(self, query, controller, force):
        """Fetch the leaderboard (cached unless forced) and show the day picker"""
        if self.client is None:
            await query.edit_message_text(
                "Live fetch is not configured (YEAR, SESSION_TOKEN, LEADERBOARD_ID). "
                "Send a leaderboard .json file instead."
            )
            return

        await query.edit_message_text("Fetching...")
        try:
            data = await asyncio.to_thread(self.client.get_leaderboard, force)
            controller.load(data)
        except (LeaderboardError, InvalidData) as e:
            logger.error(f"Leaderboard load failed: {e}")
            await query.edit_message_text(f"Error: {e}", reply_markup=self._menu_markup())
            return

        await self.show_days(query, controller, prefix="Loaded!\n\n")

    async def _respond(self, query, text, reply_markup=None):
        """Edit text messages in place; photos and animations get a new reply"""
        if query.message.text:
            await query.edit_message_text(text, reply_markup=reply_markup)
        else:
            await query.message.reply_text(text, reply_markup=reply_markup)

    async def show_days(self, query, controller, prefix=""):
        days = controller.available_days()
        if not days:
            await self._respond(query, prefix + "No days with completed stars yet.", self._menu_markup())
            return
        await self._respond(query, prefix + "Pick a day:", days_keyboard(days))

    async def select_day(self, query, controller, day):
        """Build the day's entries and show the wheel at rest"""
        try:
            entries = controller.select_day(day)
        except RuntimeError:
            await self._respond(query, "No leaderboard loaded yet.", self._menu_markup())
            return

        if not entries:
            await self._respond(query, f"Day {day}: nobody earned a star, nothing to spin.",
                                days_keyboard(controller.available_days()))
            return

        image = draw_wheel(entries, controller.wheel.rotation)
        with image_to_bytes(image) as bio:
            await query.message.reply_photo(
                photo=bio,
                caption=f"Day {day}: {len(entries)} entries from {len(entry_counts(entries))} members",
                reply_markup=wheel_keyboard(controller),
            )

    async def spin(self, query, controller):
        """Spin the wheel, send the animation and announce the winner"""
        entries = controller.entries
        rotations = controller.run_spin(time.monotonic() * 1000, self.FRAME_MS)
        if not rotations:
            await query.message.reply_text("The wheel can't be spun right now.")
            return

        winner = controller.winner
        try:
            bio = await asyncio.to_thread(
                save_spin_gif, entries, rotations, None, self.FRAME_MS, controller.winner_index
            )
            with bio:
                await query.message.reply_animation(
                    animation=bio,
                    caption=f"🎉 Winner: {winner.name} 🎉",
                    reply_markup=wheel_keyboard(controller),
                )
        except Exception as e:
            logger.error(f"Failed to send spin animation: {e}")
            await query.message.reply_text(f"🎉 Winner: {winner.name} 🎉", reply_markup=wheel_keyboard(controller))

    async def upload_leaderboard(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Load a leaderboard from an uploaded .json document"""
        if not self._is_allowed(update.effective_user.id):
            await update.message.reply_text("Access denied.")
            return

        document = update.message.document
        if document.file_size and document.file_size > MAX_UPLOAD_BYTES:
            await update.message.reply_text("That file is too large to be a leaderboard.")
            return

        controller = self._controller(context)
        try:
            file = await document.get_file()
            raw = await file.download_as_bytearray()
            data = json.loads(bytes(raw).decode('utf-8'))
            controller.load(data)
        except (ValueError, InvalidData) as e:
            logger.error(f"Error parsing uploaded leaderboard: {e}")
            await update.message.reply_text("Error parsing file. Is it a leaderboard JSON export?")
            return

        days = controller.available_days()
        if not days:
            await update.message.reply_text("File Loaded! No days with completed stars yet.")
            return
        await update.message.reply_text("File Loaded! Pick a day:", reply_markup=days_keyboard(days))


def main():
    """Start the bot"""
    BOT_TOKEN = os.getenv('BOT_TOKEN')

    if not BOT_TOKEN:
        print("ERROR: Please set your BOT_TOKEN in the .env file!")
        return

    bot = RaffleWheelBot()

    # Create application
    application = Application.builder().token(BOT_TOKEN).post_shutdown(bot.shutdown).build()

    # Add handlers
    application.add_handler(CommandHandler("start", bot.start))
    application.add_handler(CommandHandler("days", bot.days_command))
    application.add_handler(CallbackQueryHandler(bot.button_handler))
    application.add_handler(MessageHandler(filters.Document.FileExtension("json"), bot.upload_leaderboard))

    print("STARTING: Raffle wheel bot is starting...")
    print("INFO: Send /start to your bot to begin!")

    # Start the bot
    application.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
