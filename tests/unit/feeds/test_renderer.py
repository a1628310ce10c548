"""Tests for RSS rendering."""

from datetime import datetime, timezone

import pytest

from nostrcast.config.schema import (
    GlobalConfig,
    License,
    Location,
    PodcastMetadata,
    ValueConfig,
    ValueRecipient,
)
from nostrcast.feeds.episodes import event_to_episode
from nostrcast.feeds.renderer import RSSRenderer, clean_text
from nostrcast.feeds.validator import check_well_formed, find_unclosed_tags, lint_structure
from nostrcast.nostr.nip19 import decode_nevent

GENERATED_AT = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.fixture
def renderer(config: GlobalConfig) -> RSSRenderer:
    return RSSRenderer(config)


class TestCleanText:
    """Tests for clean_text."""

    def test_normalizes_line_breaks(self) -> None:
        """Test CRLF and CR become LF."""
        assert clean_text("one\ntwo\r\nthree\rfour") == "one\ntwo\nthree\nfour"

    def test_drops_control_characters(self) -> None:
        """Test characters XML cannot carry are removed."""
        assert clean_text("bell\x07 and null\x00") == "bell and null"

    def test_drops_lone_surrogates(self) -> None:
        """Test unpaired surrogates, which cannot be encoded as UTF-8, are removed."""
        assert clean_text("Bad \ud800 title") == "Bad  title"

    def test_whitespace_only_becomes_empty(self) -> None:
        """Test values with no visible text collapse to an empty string."""
        assert clean_text(" \n ") == ""

    def test_non_strings(self) -> None:
        """Test numbers are converted."""
        assert clean_text(60) == "60"


class TestRenderChannel:
    """Tests for channel-level output."""

    def test_empty_feed(self, renderer: RSSRenderer) -> None:
        """Test zero episodes still give a complete document."""
        xml = renderer.render([], generated_at=GENERATED_AT)

        assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?>\n')
        assert "<rss " in xml and "</rss>" in xml
        assert "<channel>" in xml and "</channel>" in xml
        assert "<item>" not in xml
        assert find_unclosed_tags(xml).balanced
        assert check_well_formed(xml) == []

    def test_namespaces_on_one_line(self, renderer: RSSRenderer) -> None:
        """Test the rss element declares all namespaces on a single line."""
        rss_line = renderer.render([], generated_at=GENERATED_AT).splitlines()[1]

        assert rss_line.startswith("<rss ")
        assert 'version="2.0"' in rss_line
        assert 'xmlns:itunes="http://www.itunes.com/dtds/podcast-1.0.dtd"' in rss_line
        assert 'xmlns:podcast="https://podcastindex.org/namespace/1.0"' in rss_line
        assert 'xmlns:content="http://purl.org/rss/1.0/modules/content/"' in rss_line

    def test_build_dates(self, renderer: RSSRenderer) -> None:
        """Test pubDate and lastBuildDate use the generation time."""
        xml = renderer.render([], generated_at=GENERATED_AT)

        assert "<pubDate>Thu, 02 Jan 2025 03:04:05 GMT</pubDate>" in xml
        assert "<lastBuildDate>Thu, 02 Jan 2025 03:04:05 GMT</lastBuildDate>" in xml

    def test_owner_and_editor(self, config: GlobalConfig) -> None:
        """Test managingEditor and itunes:owner use the configured author."""
        podcast = PodcastMetadata(author="Jane", email="jane@example.com")
        xml = RSSRenderer(config, podcast).render([], generated_at=GENERATED_AT)

        assert "<managingEditor>jane@example.com (Jane)</managingEditor>" in xml
        assert "<itunes:name>Jane</itunes:name>" in xml
        assert "<itunes:email>jane@example.com</itunes:email>" in xml

    def test_categories(self, config: GlobalConfig) -> None:
        """Test one itunes:category per configured category, escaped."""
        podcast = PodcastMetadata(categories=["Technology", "Society & Culture"])
        xml = RSSRenderer(config, podcast).render([], generated_at=GENERATED_AT)

        assert '<itunes:category text="Technology"/>' in xml
        assert '<itunes:category text="Society &amp; Culture"/>' in xml

    def test_default_funding(self, renderer: RSSRenderer, config: GlobalConfig) -> None:
        """Test a default Lightning funding entry points at the base URL."""
        xml = renderer.render([], generated_at=GENERATED_AT)

        assert (
            f'<podcast:funding url="{config.base_url}">Support this podcast via Lightning'
            "</podcast:funding>"
        ) in xml

    def test_configured_funding(self, config: GlobalConfig) -> None:
        """Test configured funding URLs replace the default."""
        podcast = PodcastMetadata(funding=["https://donate.example/a", "https://donate.example/b"])
        xml = RSSRenderer(config, podcast).render([], generated_at=GENERATED_AT)

        assert xml.count("<podcast:funding ") == 2
        assert "via Lightning" not in xml

    def test_podcast_guid_falls_back_to_creator(self, config: GlobalConfig) -> None:
        """Test the creator npub is used when no guid is configured."""
        xml = RSSRenderer(config, PodcastMetadata(guid=None)).render([], generated_at=GENERATED_AT)
        assert f"<podcast:guid>{config.creator_npub}</podcast:guid>" in xml

    def test_optional_podcasting20_tags(self, config: GlobalConfig) -> None:
        """Test location, license and newFeedUrl are rendered when set."""
        podcast = PodcastMetadata(
            location=Location(name="Austin, TX", geo="geo:30.2,-97.7"),
            license=License(identifier="cc-by-4.0", url="https://creativecommons.org/"),
            new_feed_url="https://new.example/rss.xml",
        )
        xml = RSSRenderer(config, podcast).render([], generated_at=GENERATED_AT)

        assert '<podcast:location geo="geo:30.2,-97.7">Austin, TX</podcast:location>' in xml
        assert (
            '<podcast:license url="https://creativecommons.org/">cc-by-4.0</podcast:license>'
        ) in xml
        assert "<podcast:newFeedUrl>https://new.example/rss.xml</podcast:newFeedUrl>" in xml
        assert check_well_formed(xml) == []

    def test_value_block(self, config: GlobalConfig) -> None:
        """Test the value block appears only with a positive amount."""
        podcast = PodcastMetadata(
            value=ValueConfig(
                amount=100,
                currency="BTC",
                recipients=[ValueRecipient(name="Host", address="node-pubkey", split=100)],
            )
        )
        xml = RSSRenderer(config, podcast).render([], generated_at=GENERATED_AT)
        plain = RSSRenderer(config).render([], generated_at=GENERATED_AT)

        assert '<podcast:value type="BTC" method="lightning">' in xml
        assert (
            '<podcast:valueRecipient name="Host" type="node" address="node-pubkey" split="100"/>'
        ) in xml
        assert "<podcast:value " not in plain

    def test_hostile_metadata_escaped(self, config: GlobalConfig) -> None:
        """Test metadata from the relay override cannot inject markup."""
        podcast = PodcastMetadata(title="</title><script>x</script>", author='"Evil" & co')
        xml = RSSRenderer(config, podcast).render([], generated_at=GENERATED_AT)

        assert "<script>" not in xml
        assert "&lt;/title&gt;&lt;script&gt;x&lt;/script&gt;" in xml
        assert "<itunes:author>&quot;Evil&quot; &amp; co</itunes:author>" in xml
        assert check_well_formed(xml) == []


class TestRenderItems:
    """Tests for item-level output."""

    def test_item_fields(self, make_event, renderer: RSSRenderer) -> None:
        """Test an episode renders its core RSS and iTunes tags."""
        episode = event_to_episode(
            make_event(
                title="Ep1",
                created_at=1_700_000_000,
                tags=[
                    ["description", "First"],
                    ["duration", "125"],
                    ["episode", "1"],
                    ["t", "nostr"],
                    ["image", "https://cdn.example/ep1.jpg"],
                ],
            )
        )

        xml = renderer.render([episode], generated_at=GENERATED_AT)

        assert "<item>" in xml
        assert "<title>Ep1</title>" in xml
        assert "<description>First</description>" in xml
        assert f'<guid isPermaLink="false">{episode.id}</guid>' in xml
        assert "<pubDate>Tue, 14 Nov 2023 22:13:20 GMT</pubDate>" in xml
        assert "<category>nostr</category>" in xml
        assert (
            '<enclosure url="https://cdn.example/episode.mp3" length="0" type="audio/mpeg"/>'
        ) in xml
        assert "<itunes:duration>02:05</itunes:duration>" in xml
        assert "<itunes:episode>1</itunes:episode>" in xml
        assert '<itunes:image href="https://cdn.example/ep1.jpg"/>' in xml
        assert f"<podcast:guid>{episode.id}</podcast:guid>" in xml

    def test_link_is_nevent_with_two_relay_hints(
        self, make_event, renderer: RSSRenderer, config: GlobalConfig
    ) -> None:
        """Test the item link encodes id, author and the first two relays."""
        episode = event_to_episode(make_event())
        link = renderer.episode_link(episode)

        assert link.startswith(f"{config.base_url}/nevent1")
        pointer = decode_nevent(link.rsplit("/", 1)[1])
        assert pointer.id == episode.event_id
        assert pointer.author == episode.author_pubkey
        assert pointer.relays == config.relays[:2]

    def test_escaped_title(self, make_event, renderer: RSSRenderer) -> None:
        """Test reserved characters in titles appear escaped."""
        episode = event_to_episode(make_event(title="A & B <C>"))
        xml = renderer.render([episode], generated_at=GENERATED_AT)

        assert "<title>A &amp; B &lt;C&gt;</title>" in xml
        assert check_well_formed(xml) == []

    def test_quotes_escaped_in_text_and_attributes(self, make_event, renderer: RSSRenderer) -> None:
        """Test both quote characters are written as entities everywhere."""
        episode = event_to_episode(
            make_event(
                title='The "Best" it\'s',
                audio="https://cdn.example/it's.mp3",
                tags=[["t", "rock'n'roll"]],
            )
        )
        xml = renderer.render([episode], generated_at=GENERATED_AT)

        assert "<title>The &quot;Best&quot; it&#39;s</title>" in xml
        assert 'url="https://cdn.example/it&#39;s.mp3"' in xml
        assert "<category>rock&#39;n&#39;roll</category>" in xml
        assert check_well_formed(xml) == []

    def test_lone_surrogate_dropped(self, make_event, renderer: RSSRenderer) -> None:
        """Test a title carrying an unpaired surrogate still renders as UTF-8."""
        episode = event_to_episode(make_event(title="Bad \ud800 title"))
        xml = renderer.render([episode], generated_at=GENERATED_AT)

        assert "<title>Bad  title</title>" in xml
        assert xml.encode("utf-8")
        assert check_well_formed(xml) == []

    def test_multiline_description_stays_clean(self, make_event, renderer: RSSRenderer) -> None:
        """Test multi-line show notes keep the document lint-clean."""
        episode = event_to_episode(
            make_event(tags=[["description", "Line one\n<b>Line two</b>\n\n- item"]])
        )
        xml = renderer.render([episode], generated_at=GENERATED_AT)

        assert "<description>Line one&#10;&lt;b&gt;Line two&lt;/b&gt;&#10;&#10;- item" in xml
        assert find_unclosed_tags(xml).balanced
        report = lint_structure(xml)
        assert report.errors == []
        assert report.warnings == []
        assert check_well_formed(xml) == []

    def test_items_in_given_order(self, make_event, renderer: RSSRenderer) -> None:
        """Test the renderer keeps the order it is given."""
        episodes = [
            event_to_episode(make_event(title="Second", created_at=100)),
            event_to_episode(make_event(title="First", created_at=200)),
        ]
        xml = renderer.render(episodes, generated_at=GENERATED_AT)

        assert xml.index("<title>Second</title>") < xml.index("<title>First</title>")


class TestDeterminism:
    """Tests for reproducible output."""

    def test_same_input_same_output(self, make_event, renderer: RSSRenderer) -> None:
        """Test rendering twice with a fixed timestamp is byte-identical."""
        episodes = [event_to_episode(make_event(title=f"Ep{n}", created_at=n)) for n in range(5)]

        first = renderer.render(episodes, generated_at=GENERATED_AT)
        second = renderer.render(episodes, generated_at=GENERATED_AT)

        assert first == second

    def test_only_timestamps_differ(self, make_event, renderer: RSSRenderer) -> None:
        """Test different generation times change only the two build-date lines."""
        episodes = [event_to_episode(make_event())]
        later = datetime(2025, 6, 1, tzinfo=timezone.utc)

        first = renderer.render(episodes, generated_at=GENERATED_AT).splitlines()
        second = renderer.render(episodes, generated_at=later).splitlines()

        differing = [a for a, b in zip(first, second, strict=True) if a != b]
        assert len(differing) == 2
        assert all("Date>" in line for line in differing)

    def test_generated_output_is_clean(self, make_event, renderer: RSSRenderer) -> None:
        """Test the structural tools report nothing on rendered output."""
        episodes = [
            event_to_episode(make_event(title="Ep1", tags=[["t", "a"], ["explicit", "yes"]])),
            event_to_episode(make_event(title="Ep2", tags=[["season", "1"]])),
        ]
        xml = renderer.render(episodes, generated_at=GENERATED_AT)

        assert find_unclosed_tags(xml).balanced
        lint = lint_structure(xml)
        assert lint.valid
        assert lint.warnings == []
        assert lint.has_items
        assert check_well_formed(xml) == []
