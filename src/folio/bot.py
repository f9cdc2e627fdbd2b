"""Discord bot host for Folio.

Owns the shared collaborators (session store, gallery client, acquisition
pipeline, pager) and the background acquisition tasks. Each gateway event
is already dispatched on its own task by discord.py; acquisitions are
spawned as extra tasks so a slow download never delays a reply.
"""

from __future__ import annotations

import asyncio
import signal
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from folio.downloads import AcquisitionPipeline
from folio.gallery import GalleryClient
from folio.logging import get_logger
from folio.pagination import PaginationEngine
from folio.sessions import SessionStore

if TYPE_CHECKING:
    from folio.config import Config
    from folio.downloads import AcquisitionResult
    from folio.models import GalleryRecord

log = get_logger("bot")


class FolioBot(commands.Bot):
    """Discord bot serving gallery summaries and readers.

    Attributes:
        config: Application configuration.
        store: Origin records and reader sessions.
        gallery_client: Metadata fetcher.
        pipeline: Asset acquisition pipeline.
        pagination: Reaction-driven pager.
    """

    def __init__(
        self,
        config: Config,
        store: SessionStore | None = None,
        pipeline: AcquisitionPipeline | None = None,
    ) -> None:
        """Initialize the bot with required intents.

        Args:
            config: Application configuration.
            store: Session store; a fresh one sized from config if None.
            pipeline: Acquisition pipeline; built from config if None.
        """
        intents = discord.Intents.default()
        intents.reactions = True

        # Prefix commands are unused; /gallery is a slash command
        super().__init__(command_prefix="!", intents=intents)
        self.config = config
        self.store = store or SessionStore(origin_capacity=config.sessions.origin_capacity)
        self.pipeline = pipeline or AcquisitionPipeline.from_config(config)
        self.gallery_client: GalleryClient = self.pipeline.gallery_client
        self.pagination = PaginationEngine(self, self.store, config.gallery)
        self._acquisitions: set[asyncio.Task] = set()
        self._shutdown_requested = False

    @property
    def shutdown_requested(self) -> bool:
        return self._shutdown_requested

    async def setup_hook(self) -> None:
        """Load the command cog and sync slash commands."""
        from folio.commands import GalleryCommands

        await self.add_cog(GalleryCommands(self))
        log.info("cog_loaded", cog="GalleryCommands")

        guild_id = self.config.discord.guild_id
        if guild_id:
            guild = discord.Object(id=int(guild_id))
            self.tree.copy_global_to(guild=guild)
            await self.tree.sync(guild=guild)
        else:
            await self.tree.sync()
        log.info("commands_synced", guild_id=guild_id)

    async def on_ready(self) -> None:
        """Called when connected to Discord."""
        log.info("discord_ready", user=str(self.user), guilds=len(self.guilds))

    async def on_disconnect(self) -> None:
        """discord.py reconnects on its own; this is just for logging."""
        log.warning("discord_disconnected")

    async def on_resumed(self) -> None:
        log.info("discord_resumed")

    def schedule_acquisition(self, record: GalleryRecord) -> asyncio.Task | None:
        """Download a gallery's assets in the background.

        Returns:
            The spawned task, or None if downloads are disabled or shutting down.
        """
        if not self.config.downloads.enabled or self._shutdown_requested:
            return None

        task = asyncio.create_task(
            self._acquire(record),
            name=f"acquire-{record.code}",
        )
        self._acquisitions.add(task)
        task.add_done_callback(self._acquisitions.discard)
        return task

    async def _acquire(self, record: GalleryRecord) -> AcquisitionResult | None:
        try:
            result = await self.pipeline.download_assets(record, self.config.download_dir)
        except asyncio.CancelledError:
            log.debug("acquisition_cancelled", code=record.code)
            raise
        except Exception as e:
            log.error("acquisition_crashed", code=record.code, error=str(e))
            return None

        if result.error is not None:
            log.warning(
                "acquisition_incomplete",
                code=record.code,
                directory=str(result.directory) if result.directory else None,
                downloaded=len(result.downloaded),
                error=str(result.error),
            )
        return result

    async def graceful_shutdown(self) -> None:
        """Cancel outstanding acquisitions, then disconnect."""
        log.info("shutdown_initiated", pending_acquisitions=len(self._acquisitions))
        self._shutdown_requested = True

        for task in list(self._acquisitions):
            task.cancel()
        if self._acquisitions:
            await asyncio.gather(*self._acquisitions, return_exceptions=True)

        await self.close()
        log.info("shutdown_complete")


def setup_signal_handlers(bot: FolioBot, loop: asyncio.AbstractEventLoop) -> None:
    """Shut the bot down once on the first SIGINT or SIGTERM."""
    signals = (signal.SIGINT, signal.SIGTERM)
    shutdown: list[asyncio.Task] = []

    def on_signal(sig: signal.Signals) -> None:
        if shutdown or bot.shutdown_requested:
            log.debug("signal_ignored", signal=sig.name)
            return
        log.info("signal_received", signal=sig.name)
        shutdown.append(loop.create_task(bot.graceful_shutdown(), name="folio-shutdown"))

    for sig in signals:
        loop.add_signal_handler(sig, on_signal, sig)
    log.debug("signal_handlers_registered", signals=[s.name for s in signals])


async def run_bot(config: Config) -> None:
    """Run the bot until shutdown.

    Args:
        config: Application configuration with discord_token.
    """
    bot = FolioBot(config)
    loop = asyncio.get_running_loop()
    setup_signal_handlers(bot, loop)

    try:
        log.info("bot_starting")
        await bot.start(config.discord_token)  # type: ignore[arg-type]
    except asyncio.CancelledError:
        log.debug("bot_cancelled")
    finally:
        if not bot.is_closed():
            await bot.close()
