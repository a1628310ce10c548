"""RSS 2.0 podcast feed rendering.

Builds the channel with iTunes and Podcasting 2.0 extensions as an lxml
element tree and serializes it pretty-printed: one element per line, two
spaces per nesting level. Event content comes from anyone who can publish to
a relay, so every string is cleaned before it enters the tree and both quote
characters are written as entities on the way out.
"""

import logging
import re
from collections.abc import Iterable
from datetime import datetime

from lxml import etree

from nostrcast.config.schema import GlobalConfig, PodcastMetadata
from nostrcast.feeds.models import Episode
from nostrcast.nostr.nip19 import encode_nevent
from nostrcast.utils.datetime import format_rfc822, now_utc
from nostrcast.utils.errors import Nip19Error

logger = logging.getLogger(__name__)

ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"
PODCAST_NS = "https://podcastindex.org/namespace/1.0"
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"

NSMAP = {"itunes": ITUNES_NS, "podcast": PODCAST_NS, "content": CONTENT_NS}

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

# Relay hints embedded in each episode link
LINK_RELAY_HINTS = 2

# Characters XML 1.0 cannot carry at all, plus lone surrogates (not encodable as UTF-8)
_INVALID_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")

# lxml escapes markup characters; quotes and text line breaks are finished here
_MARKUP_RE = re.compile(r"(<[^>]*>)")


def clean_text(value: object) -> str:
    """Prepare a value for the element tree.

    Drops characters XML cannot represent and normalizes line breaks to
    ``\\n``. Whitespace-only values become empty.

    Example:
        >>> clean_text("bell\\x07\\r\\nnext")
        'bell\\nnext'
    """
    text = _INVALID_XML_CHARS.sub("", str(value))
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text if text.strip() else ""


def _finish_escaping(serialized: str) -> str:
    """Write quotes as entities and keep element text on one line.

    Whitespace-only runs between tags are the pretty-printer's layout and
    are left alone.
    """
    parts = _MARKUP_RE.split(serialized)
    for index, part in enumerate(parts):
        if index % 2:
            if not part.startswith(("<!", "<?")):
                parts[index] = part.replace("'", "&#39;")
        elif part.strip():
            parts[index] = (
                part.replace('"', "&quot;").replace("'", "&#39;").replace("\n", "&#10;")
            )
    return "".join(parts)


def _qname(tag: str) -> str:
    prefix, _, local = tag.rpartition(":")
    if not prefix:
        return tag
    return f"{{{NSMAP[prefix]}}}{local}"


def _sub(
    parent: etree._Element,
    tag: str,
    text: object | None = None,
    attrs: dict[str, object] | None = None,
) -> etree._Element:
    """Append a child; None attributes are skipped, text None gives an empty element."""
    attrib = {
        name: clean_text(value) for name, value in (attrs or {}).items() if value is not None
    }
    element = etree.SubElement(parent, _qname(tag), attrib)
    if text is not None:
        element.text = clean_text(text)
    return element


def _comment(parent: etree._Element, text: str) -> None:
    parent.append(etree.Comment(f" {text} "))


class RSSRenderer:
    """Render episodes and podcast metadata into an RSS document.

    Example:
        >>> renderer = RSSRenderer(config)
        >>> xml = renderer.render(episodes)
    """

    def __init__(self, config: GlobalConfig, podcast: PodcastMetadata | None = None) -> None:
        """Initialize the renderer.

        Args:
            config: Global configuration (base URL, relays, rss settings)
            podcast: Metadata to render; defaults to config.podcast. Pass the
                relay-published override here rather than mutating config.
        """
        self.config = config
        self.podcast = podcast or config.podcast

    @property
    def owner_line(self) -> str:
        return f"{self.podcast.email} ({self.podcast.author})"

    def episode_link(self, episode: Episode) -> str:
        """Canonical episode URL: base URL plus an nevent with relay hints."""
        try:
            nevent = encode_nevent(
                episode.event_id,
                author=episode.author_pubkey,
                relays=self.config.relays[:LINK_RELAY_HINTS],
            )
        except Nip19Error as e:
            logger.warning(f"Could not encode nevent for {episode.event_id}: {e}")
            nevent = episode.event_id
        return f"{self.config.base_url}/{nevent}"

    def render(self, episodes: Iterable[Episode], generated_at: datetime | None = None) -> str:
        """Render the complete feed document.

        Args:
            episodes: Episodes in display order (newest first)
            generated_at: Build timestamp; defaults to now. Fixing it makes
                output byte-for-byte reproducible.

        Returns:
            The XML document as a string
        """
        build_date = format_rfc822(generated_at or now_utc())

        rss = etree.Element("rss", nsmap=NSMAP)
        rss.set("version", "2.0")
        channel = etree.SubElement(rss, "channel")

        self._add_channel_metadata(channel, build_date)
        self._add_itunes_channel(channel)
        self._add_podcasting20_channel(channel)
        _sub(channel, "generator", self.config.rss.generator)

        for episode in episodes:
            self._add_item(channel, episode)

        body = etree.tostring(rss, encoding="unicode", pretty_print=True)
        return f"{XML_DECLARATION}\n{_finish_escaping(body)}"

    def _add_channel_metadata(self, channel: etree._Element, build_date: str) -> None:
        podcast = self.podcast
        _sub(channel, "title", podcast.title)
        _sub(channel, "description", podcast.description)
        _sub(channel, "link", podcast.website or self.config.base_url)
        _sub(channel, "language", podcast.language)
        _sub(channel, "copyright", podcast.copyright)
        _sub(channel, "managingEditor", self.owner_line)
        _sub(channel, "webMaster", self.owner_line)
        _sub(channel, "pubDate", build_date)
        _sub(channel, "lastBuildDate", build_date)
        _sub(channel, "ttl", self.config.rss.ttl)

    def _add_itunes_channel(self, channel: etree._Element) -> None:
        podcast = self.podcast
        _comment(channel, "iTunes/Apple Podcasts tags")
        _sub(channel, "itunes:title", podcast.title)
        _sub(channel, "itunes:summary", podcast.description)
        _sub(channel, "itunes:author", podcast.author)
        owner = _sub(channel, "itunes:owner")
        _sub(owner, "itunes:name", podcast.author)
        _sub(owner, "itunes:email", podcast.email)
        if podcast.image:
            _sub(channel, "itunes:image", attrs={"href": podcast.image})
        for category in podcast.categories:
            _sub(channel, "itunes:category", attrs={"text": category})
        _sub(channel, "itunes:explicit", "true" if podcast.explicit else "false")
        _sub(channel, "itunes:type", podcast.type)
        if podcast.complete:
            _sub(channel, "itunes:complete", "Yes")

    def _add_podcasting20_channel(self, channel: etree._Element) -> None:
        podcast = self.podcast
        _comment(channel, "Podcasting 2.0 tags")
        _sub(channel, "podcast:guid", podcast.guid or self.config.creator_npub)
        _sub(channel, "podcast:locked", "yes" if podcast.locked else "no")
        if podcast.medium:
            _sub(channel, "podcast:medium", podcast.medium)
        if podcast.publisher:
            _sub(channel, "podcast:publisher", podcast.publisher)
        if podcast.license:
            _sub(
                channel,
                "podcast:license",
                podcast.license.identifier,
                {"url": podcast.license.url},
            )
        if podcast.location:
            _sub(
                channel,
                "podcast:location",
                podcast.location.name,
                {"geo": podcast.location.geo, "osm": podcast.location.osm},
            )
        for person in podcast.person:
            _sub(
                channel,
                "podcast:person",
                person.name,
                {
                    "role": person.role,
                    "group": person.group,
                    "img": person.img,
                    "href": person.href,
                },
            )
        for txt in podcast.txt:
            _sub(channel, "podcast:txt", txt.content, {"purpose": txt.purpose})
        for item in podcast.remote_item:
            _sub(
                channel,
                "podcast:remoteItem",
                attrs={
                    "feedGuid": item.feed_guid,
                    "feedUrl": item.feed_url,
                    "itemGuid": item.item_guid,
                    "medium": item.medium,
                },
            )
        if podcast.block:
            _sub(
                channel,
                "podcast:block",
                attrs={"id": podcast.block.id, "reason": podcast.block.reason},
            )
        if podcast.new_feed_url:
            _sub(channel, "podcast:newFeedUrl", podcast.new_feed_url)

        if podcast.funding:
            for url in podcast.funding:
                _sub(channel, "podcast:funding", "Support this podcast", {"url": url})
        else:
            _sub(
                channel,
                "podcast:funding",
                "Support this podcast via Lightning",
                {"url": self.config.base_url},
            )

        if podcast.value.amount > 0:
            self._add_value(channel)

    def _add_value(self, channel: etree._Element) -> None:
        podcast = self.podcast
        value = _sub(
            channel, "podcast:value", attrs={"type": podcast.value.currency, "method": "lightning"}
        )
        if podcast.value.recipients:
            for recipient in podcast.value.recipients:
                _sub(
                    value,
                    "podcast:valueRecipient",
                    attrs={
                        "name": recipient.name,
                        "type": recipient.type,
                        "address": recipient.address,
                        "split": recipient.split,
                        "customKey": recipient.custom_key,
                        "customValue": recipient.custom_value,
                    },
                )
        else:
            _sub(
                value,
                "podcast:valueRecipient",
                attrs={
                    "name": podcast.author,
                    "type": "node",
                    "address": podcast.funding[0] if podcast.funding else "",
                    "split": 100,
                },
            )

    def _add_item(self, channel: etree._Element, episode: Episode) -> None:
        description = episode.description or ""

        item = _sub(channel, "item")
        _sub(item, "title", episode.title)
        _sub(item, "description", description)
        _sub(item, "link", self.episode_link(episode))
        _sub(item, "guid", episode.id, {"isPermaLink": "false"})
        _sub(item, "pubDate", format_rfc822(episode.publish_date))
        _sub(item, "author", self.owner_line)
        for category in episode.tags:
            _sub(item, "category", category)
        _sub(
            item,
            "enclosure",
            attrs={"url": episode.audio_url, "length": 0, "type": episode.audio_type},
        )

        _comment(item, "iTunes tags")
        _sub(item, "itunes:title", episode.title)
        _sub(item, "itunes:summary", description)
        _sub(item, "itunes:author", self.podcast.author)
        if episode.duration_formatted:
            _sub(item, "itunes:duration", episode.duration_formatted)
        if episode.episode_number:
            _sub(item, "itunes:episode", episode.episode_number)
        if episode.season_number:
            _sub(item, "itunes:season", episode.season_number)
        _sub(item, "itunes:explicit", "true" if episode.explicit else "false")
        if episode.image_url:
            _sub(item, "itunes:image", attrs={"href": episode.image_url})

        _comment(item, "Podcasting 2.0 tags")
        _sub(item, "podcast:guid", episode.id)
