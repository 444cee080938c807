import os
import asyncio
import discord
from discord.ext import commands
from openai import OpenAI
from config.defaults import DEFAULT_COMMAND_PREFIX
from config.defaults import DEFAULT_DB_PATH
from config.defaults import DEFAULT_OPENAI_TIMEOUT_SECONDS
from config.defaults import DEFAULT_RECENT_WINDOW
from controller.assistant_config import load_assistant_config
from controller.completion import CompletionProvider
from controller.context import parse_float
from controller.context import parse_id_set
from db.context_store import ContextStore
from db.migrate import init_db
from db.migrate import list_schema_migrations_sync
from jobs.service import drain_background
from misc.runtime_wiring import wire_bot_runtime

# =========================
# ENV
# =========================
DISCORD_TOKEN = os.getenv("DISCORD_TOKEN")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

if not DISCORD_TOKEN:
    raise RuntimeError("Missing DISCORD_TOKEN env var")
if not OPENAI_API_KEY:
    raise RuntimeError("Missing OPENAI_API_KEY env var")

DB_PATH = os.getenv("COPILOT_DB_PATH", DEFAULT_DB_PATH)
OWNER_USER_IDS = parse_id_set(os.getenv("COPILOT_OWNER_USER_IDS"))
OPENAI_TIMEOUT_SECONDS = parse_float(os.getenv("COPILOT_OPENAI_TIMEOUT_SECONDS"), DEFAULT_OPENAI_TIMEOUT_SECONDS)
ASSISTANT_CONFIG_PATH = os.getenv(
    "COPILOT_ASSISTANT_CONFIG_PATH",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "config", "assistant.yml"),
)

ASSISTANT_CONFIG, ASSISTANT_CONFIG_WARNING = load_assistant_config(ASSISTANT_CONFIG_PATH)
if ASSISTANT_CONFIG_WARNING:
    print(f"[CFG] {ASSISTANT_CONFIG_WARNING}")

AI_CONFIG = dict(ASSISTANT_CONFIG.ai_config)
OPENAI_MODEL = (os.getenv("COPILOT_OPENAI_MODEL") or "").strip() or AI_CONFIG["model"]
AI_CONFIG["model"] = OPENAI_MODEL

print(
    f"[CFG] assistant_config={ASSISTANT_CONFIG.version} path={ASSISTANT_CONFIG_PATH} "
    f"model={OPENAI_MODEL} temperature={AI_CONFIG['temperature']} "
    f"max_output_tokens={AI_CONFIG['max_output_tokens']} timeout_s={OPENAI_TIMEOUT_SECONDS}"
)
print(f"[CFG] owners={len(OWNER_USER_IDS)} recent_window={DEFAULT_RECENT_WINDOW}")

if not OWNER_USER_IDS:
    print("[CFG] COPILOT_OWNER_USER_IDS is empty; admin commands fall back to server administrators")

# =========================
# DB
# =========================
db_conn = init_db(DB_PATH)
print(f"[DB] Using DB_PATH={DB_PATH}")
db_lock = asyncio.Lock()

store = ContextStore(db_lock=db_lock, db_conn=db_conn, default_ai_config=AI_CONFIG)

# =========================
# OPENAI
# =========================
# No client-side retries: a failed completion becomes an apology reply.
client = OpenAI(api_key=OPENAI_API_KEY, max_retries=0, timeout=OPENAI_TIMEOUT_SECONDS)
completion = CompletionProvider(
    client=client,
    model=OPENAI_MODEL,
    temperature=AI_CONFIG["temperature"],
    max_output_tokens=AI_CONFIG["max_output_tokens"],
)

# =========================
# DISCORD
# =========================
intents = discord.Intents.default()
intents.message_content = True

bot = commands.Bot(command_prefix=DEFAULT_COMMAND_PREFIX, intents=intents)

runtime_deps = wire_bot_runtime(
    bot,
    store=store,
    completion=completion,
    assistant_config=ASSISTANT_CONFIG,
    owner_user_ids=OWNER_USER_IDS,
    db_lock=db_lock,
    db_conn=db_conn,
    list_schema_migrations_sync=list_schema_migrations_sync,
    recent_window=DEFAULT_RECENT_WINDOW,
    command_prefix=DEFAULT_COMMAND_PREFIX,
)


async def main() -> None:
    discord.utils.setup_logging()
    async with bot:
        try:
            await bot.start(DISCORD_TOKEN)
        finally:
            pending = len(runtime_deps.background_tasks)
            if pending:
                print(f"[Shutdown] waiting for {pending} background task(s)")
            await drain_background(runtime_deps.background_tasks)
            db_conn.close()


try:
    asyncio.run(main())
except KeyboardInterrupt:
    print("[Shutdown] interrupted")
