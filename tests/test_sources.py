"""Unit tests for event sources."""
import pytest
import responses
from requests.exceptions import ConnectionError as RequestsConnectionError

from processor.errors import SourceFetchError
from scraper.base import EventSource, SourceChain
from scraper.listing_sites import ListingSiteSource
from scraper.serp_api import SerpApiSource


SERP_URL = "https://serpapi.com/search"
EVENTBRITE_MUMBAI = "https://www.eventbrite.com/d/india--mumbai/all/"
MEETUP_URL = "https://www.meetup.com/find/"

EVENTBRITE_HTML = """
<html>
    <body>
        <div class="search-event-card-wrapper">
            <h2>Sunday Jazz Brunch</h2>
            <div class="eds-event-card-content__sub-title">Sun, Jan 12, 11:00 AM</div>
            <div class="card-text--truncated__one">Blue Frog, Lower Parel</div>
            <a href="https://www.eventbrite.com/e/123">Tickets</a>
        </div>
        <div class="search-event-card-wrapper">
            <div class="eds-event-card-content__sub-title">No title here</div>
        </div>
        <div class="search-event-card-wrapper">
            <div class="eds-event-card__formatted-name--is-clamped">Startup Pitch Night</div>
        </div>
    </body>
</html>
"""

MEETUP_HTML = """
<html>
    <body>
        <div data-event-label="event-1">
            <h3>Python Mumbai Meetup</h3>
            <time datetime="2025-02-01T18:00:00+05:30">Sat, Feb 1</time>
            <p class="text-gray-7">WeWork BKC</p>
            <a href="https://www.meetup.com/python-mumbai/events/1/">Open</a>
        </div>
    </body>
</html>
"""


class StaticSource(EventSource):
    def __init__(self, name, events=None, error=None):
        self.name = name
        self.events = events or []
        self.error = error
        self.calls = []

    def fetch(self, city, category='all'):
        self.calls.append((city, category))
        if self.error:
            raise self.error
        return list(self.events)


class TestSerpApiSource:
    """Test cases for SerpApiSource class."""

    def test_build_query(self):
        assert SerpApiSource.build_query('Delhi') == 'events in Delhi'
        assert SerpApiSource.build_query('Delhi', 'all') == 'events in Delhi'
        assert SerpApiSource.build_query('Delhi', 'Music') == 'Music events in Delhi'

    @responses.activate
    def test_fetch_success(self):
        responses.add(
            responses.GET,
            SERP_URL,
            json={'events_results': [
                {'title': 'Comedy Night', 'address': ['Canvas Laugh Club', 'Mumbai']},
                'not-a-record',
                {'title': 'Food Walk'},
            ]},
            status=200
        )

        events = SerpApiSource('test-key').fetch('Mumbai', 'Comedy')

        assert [e['title'] for e in events] == ['Comedy Night', 'Food Walk']
        request = responses.calls[0].request
        assert 'engine=google_events' in request.url
        assert 'api_key=test-key' in request.url
        assert 'hl=en' in request.url

    def test_fetch_without_key_returns_empty(self):
        assert SerpApiSource(None).fetch('Mumbai') == []
        assert SerpApiSource('').fetch('Mumbai') == []

    @responses.activate
    def test_fetch_no_results(self):
        responses.add(responses.GET, SERP_URL, json={'search_metadata': {}}, status=200)
        assert SerpApiSource('test-key').fetch('Mumbai') == []

    @responses.activate
    def test_fetch_http_error(self):
        responses.add(responses.GET, SERP_URL, json={'error': 'bad key'}, status=401)
        with pytest.raises(SourceFetchError):
            SerpApiSource('bad-key').fetch('Mumbai')

    @responses.activate
    def test_fetch_connection_error(self):
        responses.add(responses.GET, SERP_URL, body=RequestsConnectionError('unreachable'))
        with pytest.raises(SourceFetchError):
            SerpApiSource('test-key').fetch('Mumbai')

    @responses.activate
    def test_fetch_invalid_json(self):
        responses.add(responses.GET, SERP_URL, body='<html>oops</html>', status=200)
        with pytest.raises(SourceFetchError):
            SerpApiSource('test-key').fetch('Mumbai')


class TestListingSiteSource:
    """Test cases for ListingSiteSource class."""

    @responses.activate
    def test_fetch_both_sites(self):
        responses.add(responses.GET, EVENTBRITE_MUMBAI, body=EVENTBRITE_HTML, status=200)
        responses.add(responses.GET, MEETUP_URL, body=MEETUP_HTML, status=200)

        events = ListingSiteSource(timeout=5).fetch('Mumbai', 'all')

        assert [e['title'] for e in events] == [
            'Sunday Jazz Brunch', 'Startup Pitch Night', 'Python Mumbai Meetup'
        ]

        jazz = events[0]
        assert jazz['date'] == {'when': 'Sun, Jan 12, 11:00 AM'}
        assert jazz['address'] == 'Blue Frog, Lower Parel'
        assert jazz['link'] == 'https://www.eventbrite.com/e/123'
        assert jazz['category'] == 'all'

        pitch = events[1]
        assert pitch['link'] == '#'
        assert 'date' not in pitch
        assert 'address' not in pitch

        meetup = events[2]
        assert meetup['date'] == {'when': '2025-02-01T18:00:00+05:30'}
        assert meetup['address'] == 'WeWork BKC'

        meetup_request = responses.calls[1].request
        assert 'location=in--Mumbai' in meetup_request.url
        assert 'keywords=all' in meetup_request.url

    @responses.activate
    def test_failed_site_contributes_nothing(self):
        responses.add(responses.GET, EVENTBRITE_MUMBAI, status=503)
        responses.add(responses.GET, MEETUP_URL, body=MEETUP_HTML, status=200)

        events = ListingSiteSource().fetch('Mumbai')

        assert [e['title'] for e in events] == ['Python Mumbai Meetup']

    @responses.activate
    def test_both_sites_down(self):
        responses.add(responses.GET, EVENTBRITE_MUMBAI, body=RequestsConnectionError('down'))
        responses.add(responses.GET, MEETUP_URL, status=500)

        assert ListingSiteSource().fetch('Mumbai') == []

    @responses.activate
    def test_eventbrite_url_uses_lowercase_city(self):
        url = "https://www.eventbrite.com/d/india--chennai/music/"
        responses.add(responses.GET, url, body='<html></html>', status=200)
        responses.add(responses.GET, MEETUP_URL, body='<html></html>', status=200)

        assert ListingSiteSource().fetch('Chennai', 'music') == []
        assert responses.calls[0].request.url == url


class TestSourceChain:
    """Test cases for SourceChain fallback."""

    def test_first_non_empty_wins(self):
        primary = StaticSource('primary', events=[{'title': 'A'}])
        fallback = StaticSource('fallback', events=[{'title': 'B'}])

        events = SourceChain([primary, fallback]).fetch('Pune', 'Music')

        assert events == [{'title': 'A'}]
        assert primary.calls == [('Pune', 'Music')]
        assert fallback.calls == []

    def test_empty_result_falls_through(self):
        primary = StaticSource('primary')
        fallback = StaticSource('fallback', events=[{'title': 'B'}])

        assert SourceChain([primary, fallback]).fetch('Pune') == [{'title': 'B'}]

    def test_failure_falls_through(self):
        primary = StaticSource('primary', error=SourceFetchError('quota exceeded'))
        fallback = StaticSource('fallback', events=[{'title': 'B'}])

        assert SourceChain([primary, fallback]).fetch('Pune') == [{'title': 'B'}]

    def test_unexpected_error_falls_through(self):
        """A source failing outside the fetch error types still falls back."""
        primary = StaticSource('primary', error=ValueError('bad payload'))
        fallback = StaticSource('fallback', events=[{'title': 'B'}])

        assert SourceChain([primary, fallback]).fetch('Pune') == [{'title': 'B'}]
        assert fallback.calls == [('Pune', 'all')]

    def test_all_sources_empty(self):
        chain = SourceChain([StaticSource('a'), StaticSource('b', error=SourceFetchError('x'))])
        assert chain.fetch('Pune') == []

    @responses.activate
    def test_serp_failure_falls_back_to_listing_sites(self):
        responses.add(responses.GET, SERP_URL, status=500)
        responses.add(responses.GET, EVENTBRITE_MUMBAI, body=EVENTBRITE_HTML, status=200)
        responses.add(responses.GET, MEETUP_URL, body='<html></html>', status=200)

        chain = SourceChain([SerpApiSource('test-key'), ListingSiteSource()])
        events = chain.fetch('Mumbai')

        assert [e['title'] for e in events] == ['Sunday Jazz Brunch', 'Startup Pitch Night']
