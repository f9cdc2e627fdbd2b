"""Discord surface for gallery lookups.

The /gallery slash command fetches metadata, posts a summary with the
open reaction, and hands asset downloading to the bot's background
acquisition. Reaction and deletion events are forwarded to the
PaginationEngine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from folio.errors import GalleryError
from folio.logging import get_logger
from folio.models import OriginRecord, is_valid_code
from folio.pagination import OPEN_EMOJI, ReactionEvent, build_summary_embed

if TYPE_CHECKING:
    from folio.bot import FolioBot

log = get_logger("commands")


class GalleryCommands(commands.Cog):
    """Gallery lookup command and reader reaction listeners."""

    def __init__(self, bot: FolioBot) -> None:
        """Initialize the commands cog.

        Args:
            bot: The FolioBot instance.
        """
        self.bot = bot
        self.config = bot.config

    @app_commands.command(name="gallery", description="Look up a gallery by its code")
    @app_commands.describe(code="The gallery code (e.g., 297974)")
    async def gallery(self, interaction: discord.Interaction, code: str) -> None:
        """Fetch a gallery, post its summary and start downloading it."""
        code = code.strip()
        if not is_valid_code(code):
            await interaction.response.send_message(
                "Please provide a valid code",
                ephemeral=True,
            )
            return

        await interaction.response.defer()
        log.info(
            "gallery_command",
            code=code,
            user=str(interaction.user),
            user_id=str(interaction.user.id),
            guild_id=str(interaction.guild_id) if interaction.guild_id else None,
        )

        try:
            record = await self.bot.gallery_client.fetch_metadata(code)
        except GalleryError as e:
            log.info("gallery_lookup_failed", code=code, error=str(e))
            await self._reply_privately(interaction, f"Error: {e}")
            return

        try:
            message = await interaction.followup.send(
                embed=build_summary_embed(record, self.config.gallery),
                wait=True,
            )
        except discord.HTTPException as e:
            log.error("summary_send_failed", code=code, error=str(e))
            await self._reply_privately(interaction, "Failed to send message")
            return

        origin = OriginRecord.from_gallery(
            record,
            channel_id=str(interaction.channel_id),
            requester_id=str(interaction.user.id),
        )
        await self.bot.store.put_origin(str(message.id), origin)

        try:
            await message.add_reaction(OPEN_EMOJI)
        except discord.HTTPException as e:
            log.warning("reaction_add_failed", message_id=str(message.id), error=str(e))

        self.bot.schedule_acquisition(record)

    async def _reply_privately(self, interaction: discord.Interaction, content: str) -> None:
        """Replace the public deferred reply with an ephemeral one.

        The first followup after a public defer inherits its visibility, so
        the placeholder is removed before the ephemeral followup is sent.
        """
        try:
            await interaction.delete_original_response()
            await interaction.followup.send(content, ephemeral=True)
        except discord.HTTPException as e:
            log.warning("error_reply_failed", error=str(e))

    @commands.Cog.listener()
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        """Forward reactions to the pager."""
        outcome = await self.bot.pagination.handle(ReactionEvent.from_payload(payload))
        log.debug(
            "reaction_handled",
            message_id=str(payload.message_id),
            emoji=payload.emoji.name,
            outcome=outcome.value,
        )

    @commands.Cog.listener()
    async def on_raw_message_delete(self, payload: discord.RawMessageDeleteEvent) -> None:
        """Discard reader state for messages removed by someone else."""
        await self.bot.pagination.forget_message(str(payload.message_id))
