"""Tests for the web UI and JSON API."""
import pytest
from fastapi.testclient import TestClient

from config import Settings
from processor.errors import SourceFetchError
from scraper.base import EventSource, SourceChain
from storage.memory_store import MemoryStore
from web.app import create_app


class FakeSource(EventSource):
    name = 'fake'

    def __init__(self, events_by_city=None, error=None):
        self.events_by_city = events_by_city or {}
        self.error = error
        self.calls = []

    def fetch(self, city, category='all'):
        self.calls.append((city, category))
        if self.error:
            raise self.error
        return list(self.events_by_city.get(city, []))


RAW_EVENTS = {
    'Mumbai': [
        {'title': 'Sunburn Arena', 'date': {'start_date': '2099-03-01'},
         'address': ['NSCI Dome', 'Worli', 'Worli'], 'link': 'https://example.com/sunburn'},
        {'title': 'Tech Talk Tuesdays', 'date': {'start_date': '2099-03-04'},
         'venue': {'name': 'WeWork BKC'}},
    ],
}


@pytest.fixture
def source():
    return FakeSource(RAW_EVENTS)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def client(source, store):
    app = create_app(Settings(store_backend='memory'), store=store, source=source)
    with TestClient(app) as test_client:
        yield test_client


class TestPages:
    """Test cases for HTML pages."""

    def test_index_lists_cities(self, client):
        response = client.get('/')
        assert response.status_code == 200
        assert 'Kolkata' in response.text
        assert 'action="/scrape"' in response.text

    def test_scrape_form(self, client, store):
        response = client.post('/scrape', data={'city': 'Mumbai', 'category': ''})

        assert response.status_code == 200
        assert 'Sunburn Arena' in response.text
        assert 'NSCI Dome, Worli' in response.text
        assert 'Successfully saved 2 new events and updated 0 existing events for Mumbai' in response.text
        assert len(store.get_partition('Mumbai').list_rows()) == 2

    def test_scrape_json_body(self, client, source):
        response = client.post('/scrape', json={'city': 'Mumbai', 'category': 'Music'})

        assert response.status_code == 200
        assert source.calls == [('Mumbai', 'Music')]

    def test_scrape_requires_city(self, client):
        response = client.post('/scrape', data={'category': 'Music'})
        assert response.status_code == 400
        assert 'City is required' in response.text

    def test_scrape_source_failure(self, store):
        app = create_app(
            Settings(store_backend='memory'), store=store,
            source=FakeSource(error=SourceFetchError('quota exceeded'))
        )
        with TestClient(app) as test_client:
            response = test_client.post('/scrape', data={'city': 'Mumbai'})

        assert response.status_code == 500
        assert 'quota exceeded' in response.text

    def test_scrape_falls_back_after_broken_source(self, store):
        """A source raising an unexpected error does not surface as an error page."""
        chain = SourceChain([FakeSource(error=ValueError('bad payload')), FakeSource(RAW_EVENTS)])
        app = create_app(Settings(store_backend='memory'), store=store, source=chain)

        with TestClient(app) as test_client:
            response = test_client.post('/scrape', data={'city': 'Mumbai'})

        assert response.status_code == 200
        assert 'Sunburn Arena' in response.text

    def test_city_events_stored(self, client, source):
        client.post('/scrape', data={'city': 'Mumbai'})

        response = client.get('/events/Mumbai')

        assert response.status_code == 200
        assert 'Showing 2 events in Mumbai' in response.text
        assert len(source.calls) == 1

    def test_city_events_live_fallback(self, client, source):
        response = client.get('/events/Mumbai')

        assert response.status_code == 200
        assert 'Tech Talk Tuesdays' in response.text
        assert source.calls == [('Mumbai', 'all')]

    def test_city_events_category_filter(self, client):
        client.post('/scrape', data={'city': 'Mumbai'})

        response = client.get('/events/Mumbai', params={'category': 'technology'})

        assert 'Showing 1 events in Mumbai' in response.text
        assert 'Tech Talk Tuesdays' in response.text
        assert 'Sunburn Arena' not in response.text

    def test_city_events_empty(self, client):
        response = client.get('/events/Pune')
        assert response.status_code == 200
        assert 'No events found for Pune' in response.text

    def test_dashboard(self, client):
        client.post('/scrape', data={'city': 'Mumbai'})

        response = client.get('/dashboard')

        assert response.status_code == 200
        assert 'Dashboard' in response.text
        assert 'Hyderabad' in response.text
        assert 'Never' in response.text

    def test_not_found(self, client):
        response = client.get('/no/such/page')
        assert response.status_code == 404
        assert 'Page not found' in response.text


class TestApi:
    """Test cases for JSON endpoints."""

    def test_api_events(self, client):
        response = client.get('/api/events', params={'city': 'Mumbai'})

        assert response.status_code == 200
        body = response.json()
        assert body['success'] is True
        assert body['city'] == 'Mumbai'
        assert body['category'] == 'all'
        assert body['count'] == 2
        assert body['events'][0]['name'] == 'Sunburn Arena'
        assert body['events'][0]['venue'] == 'NSCI Dome, Worli'
        assert body['events'][1]['category'] == 'Technology'

    def test_api_events_requires_city(self, client):
        response = client.get('/api/events')
        assert response.status_code == 400
        assert response.json() == {'success': False, 'error': 'City parameter is required'}

    def test_api_events_source_failure(self, store):
        app = create_app(
            Settings(store_backend='memory'), store=store,
            source=FakeSource(error=SourceFetchError('quota exceeded'))
        )
        with TestClient(app) as test_client:
            response = test_client.get('/api/events', params={'city': 'Mumbai'})

        assert response.status_code == 500
        assert response.json() == {'success': False, 'error': 'quota exceeded'}

    def test_health(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        body = response.json()
        assert body['status'] == 'OK'
        assert body['service'] == 'EventScout Scraper'
        assert 'timestamp' in body

    def test_city_sample_venues(self, client):
        response = client.get('/test/Mumbai')

        assert response.status_code == 200
        body = response.json()
        assert body['city'] == 'Mumbai'
        assert body['count'] == 2
        assert body['sample_venues'][0] == {
            'name': 'Sunburn Arena',
            'venue': 'NSCI Dome, Worli',
            'venue_length': len('NSCI Dome, Worli'),
        }

    def test_store_closed_on_shutdown(self, source):
        store = MemoryStore()
        app = create_app(Settings(store_backend='memory'), store=store, source=source)
        with TestClient(app):
            assert store.get_partition('Mumbai') is None
        assert store._opened is False