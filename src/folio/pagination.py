"""Reaction-driven gallery pager.

Each reader message is a small state machine:

    Closed --open--> Open(page) --previous/next--> Open(page') --stop--> Removed

Inbound reaction names are mapped onto ReaderAction at the boundary and
dispatched exhaustively. Only the user who opened a reader may turn its
pages; anyone else's reaction is stripped without touching state.

State changes happen inside the SessionStore under its lock. Discord
calls (send, edit, delete, reaction updates) happen afterwards, and their
failures are logged without rolling back the in-memory change.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import discord

from folio.logging import get_logger
from folio.models import GalleryRecord, ReadSession, TagType
from folio.sessions import NavigationOutcome, SessionStore

if TYPE_CHECKING:
    from folio.config import GalleryConfig

log = get_logger("pagination")

EMBED_COLOR = 0x8A2BE2
ERROR_COLOR = 0xFF0000

OPEN_EMOJI = "📖"
PREVIOUS_EMOJI = "⬅️"
STOP_EMOJI = "⏹️"
NEXT_EMOJI = "➡️"

# Attachment order on a reader message
NAVIGATION_EMOJIS = (PREVIOUS_EMOJI, STOP_EMOJI, NEXT_EMOJI)

VARIATION_SELECTOR = "\ufe0f"


class ReaderAction(str, Enum):
    """Closed set of reactions the pager understands."""

    OPEN = "open"
    PREVIOUS = "previous"
    NEXT = "next"
    STOP = "stop"
    UNKNOWN = "unknown"

    @classmethod
    def from_emoji(cls, name: str | None) -> "ReaderAction":
        """Map an emoji name to an action, ignoring variation selectors."""
        return _EMOJI_ACTIONS.get((name or "").replace(VARIATION_SELECTOR, ""), cls.UNKNOWN)


_EMOJI_ACTIONS: dict[str, ReaderAction] = {
    emoji.replace(VARIATION_SELECTOR, ""): action
    for emoji, action in (
        (OPEN_EMOJI, ReaderAction.OPEN),
        (PREVIOUS_EMOJI, ReaderAction.PREVIOUS),
        (NEXT_EMOJI, ReaderAction.NEXT),
        (STOP_EMOJI, ReaderAction.STOP),
    )
}

_STEPS = {ReaderAction.PREVIOUS: -1, ReaderAction.NEXT: 1}


@dataclass(frozen=True)
class ReactionEvent:
    """A reaction added to a message, with ids as strings."""

    user_id: str
    message_id: str
    channel_id: str
    emoji: str

    @classmethod
    def from_payload(cls, payload: discord.RawReactionActionEvent) -> "ReactionEvent":
        return cls(
            user_id=str(payload.user_id),
            message_id=str(payload.message_id),
            channel_id=str(payload.channel_id),
            emoji=payload.emoji.name or "",
        )

    @property
    def action(self) -> ReaderAction:
        return ReaderAction.from_emoji(self.emoji)


# =============================================================================
# Rendering
# =============================================================================


def build_summary_embed(record: GalleryRecord, config: GalleryConfig) -> discord.Embed:
    """Build the gallery summary: title, page count, tags and cover."""
    embed = discord.Embed(
        title=record.display_title,
        url=config.gallery_url(record.code),
        color=EMBED_COLOR,
    )
    embed.add_field(name="Pages", value=str(record.num_pages), inline=True)
    embed.set_footer(text=f"Code: {record.code}")

    if record.pages:
        embed.set_image(url=config.cover_url(record.media_id, record.cover_extension))

    artists = record.tag_names(TagType.ARTIST)
    languages = record.tag_names(TagType.LANGUAGE)
    tags = record.tag_names(TagType.TAG)

    if artists:
        embed.add_field(name="Artists", value=", ".join(artists), inline=True)
    if languages:
        embed.add_field(name="Languages", value=", ".join(languages), inline=True)
    if tags:
        embed.add_field(
            name="Tags",
            value=", ".join(tags[: config.max_summary_tags]),
            inline=False,
        )

    return embed


def build_page_embed(
    session: ReadSession,
    config: GalleryConfig,
    page: int | None = None,
) -> discord.Embed:
    """Build the view of one 0-based page, or an error view if out of range."""
    if page is None:
        page = session.current

    if not 0 <= page < len(session.page_exts):
        log.warning(
            "invalid_page_index",
            code=session.code,
            page=page,
            total=len(session.page_exts),
        )
        return discord.Embed(
            title=f"{session.code} — Error",
            description="Invalid page number",
            color=ERROR_COLOR,
        )

    image_url = config.page_url(session.media_id, page + 1, session.page_exts[page])
    embed = discord.Embed(
        title=f"{session.code} — Page {page + 1}/{session.total}",
        color=EMBED_COLOR,
    )
    embed.set_image(url=image_url)
    return embed


# =============================================================================
# Engine
# =============================================================================


class PaginationEngine:
    """Turns reaction events into reader transitions.

    Attributes:
        client: Discord client used to resolve channels and post messages.
        store: Session store holding origin records and reader sessions.
        config: Gallery host configuration for image URLs.
    """

    def __init__(
        self,
        client: discord.Client,
        store: SessionStore,
        config: GalleryConfig,
    ) -> None:
        self.client = client
        self.store = store
        self.config = config

    @property
    def bot_user_id(self) -> str | None:
        return str(self.client.user.id) if self.client.user else None

    async def handle(self, event: ReactionEvent) -> NavigationOutcome:
        """Dispatch one reaction event.

        Returns:
            What happened, for logging and tests.
        """
        if event.user_id == self.bot_user_id:
            return NavigationOutcome.IGNORED

        action = event.action
        if action is ReaderAction.OPEN:
            return await self.open_reader(event)
        if action is ReaderAction.PREVIOUS or action is ReaderAction.NEXT:
            return await self.turn_page(event, _STEPS[action])
        if action is ReaderAction.STOP:
            return await self.stop_reader(event)
        return NavigationOutcome.IGNORED

    async def open_reader(self, event: ReactionEvent) -> NavigationOutcome:
        """Post a reader for the gallery summarized on ``event.message_id``."""
        origin = await self.store.get_origin(event.message_id)
        if origin is None or origin.total == 0:
            return NavigationOutcome.IGNORED

        channel = await self._resolve_channel(origin.channel_id)
        if channel is None:
            return NavigationOutcome.IGNORED

        session = origin.open_reader(owner_id=event.user_id, channel_id=origin.channel_id)
        try:
            message = await channel.send(embed=build_page_embed(session, self.config, 0))
        except discord.HTTPException as e:
            log.warning("reader_send_failed", code=origin.code, error=str(e))
            return NavigationOutcome.IGNORED

        await self.store.put_reader(str(message.id), session)
        log.info(
            "reader_opened",
            code=session.code,
            message_id=str(message.id),
            owner_id=session.owner_id,
            total=session.total,
        )

        for emoji in NAVIGATION_EMOJIS:
            try:
                await message.add_reaction(emoji)
            except discord.HTTPException as e:
                log.warning("reaction_add_failed", message_id=str(message.id), error=str(e))

        await self._strip_reaction(channel, event.message_id, OPEN_EMOJI, event.user_id)
        return NavigationOutcome.OPENED

    async def turn_page(self, event: ReactionEvent, step: int) -> NavigationOutcome:
        """Move the reader one page back or forward and re-render it."""
        outcome, session = await self.store.navigate(event.message_id, event.user_id, step)
        channel = await self._resolve_channel(event.channel_id)
        if channel is None:
            return outcome

        if outcome is NavigationOutcome.MOVED and session is not None:
            message = channel.get_partial_message(int(event.message_id))
            try:
                await message.edit(embed=build_page_embed(session, self.config))
            except discord.HTTPException as e:
                log.warning(
                    "reader_edit_failed",
                    code=session.code,
                    message_id=event.message_id,
                    error=str(e),
                )
            log.debug(
                "reader_page_turned",
                code=session.code,
                message_id=event.message_id,
                page=session.page_number,
                total=session.total,
            )
        elif outcome is NavigationOutcome.NOT_OWNER:
            log.debug("reader_not_owner", message_id=event.message_id, user_id=event.user_id)

        await self._strip_reaction(channel, event.message_id, event.emoji, event.user_id)
        return outcome

    async def stop_reader(self, event: ReactionEvent) -> NavigationOutcome:
        """Close the reader and delete its message."""
        outcome, session = await self.store.stop(event.message_id, event.user_id)
        channel = await self._resolve_channel(event.channel_id)
        if channel is None:
            return outcome

        if outcome is NavigationOutcome.STOPPED and session is not None:
            try:
                await channel.get_partial_message(int(event.message_id)).delete()
            except discord.HTTPException as e:
                log.warning("reader_delete_failed", message_id=event.message_id, error=str(e))
            log.info("reader_closed", code=session.code, message_id=event.message_id)
        else:
            await self._strip_reaction(channel, event.message_id, event.emoji, event.user_id)
        return outcome

    async def forget_message(self, message_id: str) -> None:
        """Drop the reader session of a message deleted outside the pager."""
        session = await self.store.delete_reader(message_id)
        if session is not None:
            log.info("reader_message_removed", code=session.code, message_id=message_id)

    async def _resolve_channel(self, channel_id: str) -> discord.abc.Messageable | None:
        channel = self.client.get_channel(int(channel_id))
        if channel is not None:
            return channel
        try:
            return await self.client.fetch_channel(int(channel_id))
        except discord.HTTPException as e:
            log.warning("channel_fetch_failed", channel_id=channel_id, error=str(e))
            return None

    async def _strip_reaction(
        self,
        channel: discord.abc.Messageable,
        message_id: str,
        emoji: str,
        user_id: str,
    ) -> None:
        try:
            await channel.get_partial_message(int(message_id)).remove_reaction(
                emoji, discord.Object(id=int(user_id))
            )
        except discord.HTTPException as e:
            log.debug("reaction_remove_failed", message_id=message_id, error=str(e))
