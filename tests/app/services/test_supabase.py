"""Tests for app.services.supabase — PostgREST client and null client."""
import pytest
import requests
from unittest.mock import MagicMock, patch

from app.services.supabase import (
    NullSupabaseClient, Ordering, Predicate, SupabaseClient, SupabaseError,
    build_supabase_client, parse_content_range,
)

COLUMNS = ['id', 'title', 'triaged_at']


def _response(status_code=200, json_body=None, content_range=None, text=''):
    resp = MagicMock()
    resp.status_code = status_code
    resp.headers = {'Content-Range': content_range} if content_range else {}
    resp.json.return_value = json_body
    resp.text = text
    return resp


@pytest.fixture
def sb():
    return SupabaseClient('https://proj.supabase.co/', 'anon-key', timeout=5)


# ---------------------------------------------------------------------------
# Query building
# ---------------------------------------------------------------------------

class TestPredicate:

    def test_eq(self):
        assert Predicate('severity', 'eq', 'fatal').to_param() == ('severity', 'eq.fatal')

    def test_gte_number(self):
        assert Predicate('lead_score', 'gte', 70).to_param() == ('lead_score', 'gte.70')

    def test_not_is_null(self):
        assert Predicate('triaged_at', 'not.is', None).to_param() == ('triaged_at', 'not.is.null')


class TestOrdering:

    def test_desc_nulls_last(self):
        assert Ordering('triaged_at').to_param() == 'triaged_at.desc.nullslast'

    def test_asc_nulls_first(self):
        assert Ordering('lead_score', descending=False, nulls_last=False).to_param() == 'lead_score.asc.nullsfirst'


class TestBuildParams:

    def test_full_query(self, sb):
        params = sb.build_params(
            COLUMNS,
            [Predicate('lead_score', 'gte', 70), Predicate('severity', 'eq', 'fatal')],
            Ordering('triaged_at'),
            offset=100,
            limit=50,
        )
        assert params == [
            ('select', 'id,title,triaged_at'),
            ('lead_score', 'gte.70'),
            ('severity', 'eq.fatal'),
            ('order', 'triaged_at.desc.nullslast'),
            ('offset', '100'),
            ('limit', '50'),
        ]

    def test_zero_offset_omitted(self, sb):
        params = sb.build_params(COLUMNS, limit=50)
        assert ('offset', '0') not in params
        assert ('limit', '50') in params


class TestParseContentRange:

    @pytest.mark.parametrize('header,expected', [
        ('0-49/120', 120),
        ('100-119/120', 120),
        ('*/0', 0),
        ('*/35', 35),
        ('0-49/*', None),
        (None, None),
        ('', None),
    ])
    def test_values(self, header, expected):
        assert parse_content_range(header) == expected


# ---------------------------------------------------------------------------
# select()
# ---------------------------------------------------------------------------

class TestSelect:

    @patch('app.services.supabase.requests.get')
    def test_returns_rows_and_count(self, mock_get, sb):
        mock_get.return_value = _response(json_body=[{'id': 'a'}, {'id': 'b'}], content_range='0-1/120')

        result = sb.select('v_triage_live', COLUMNS, offset=0, limit=50)

        assert result.rows == [{'id': 'a'}, {'id': 'b'}]
        assert result.count == 120

    @patch('app.services.supabase.requests.get')
    def test_request_shape(self, mock_get, sb):
        mock_get.return_value = _response(json_body=[], content_range='*/0')

        sb.select('articles', COLUMNS, [Predicate('status', 'eq', 'new')], Ordering('triaged_at'), offset=50, limit=50)

        args, kwargs = mock_get.call_args
        assert args[0] == 'https://proj.supabase.co/rest/v1/articles'
        assert kwargs['headers']['apikey'] == 'anon-key'
        assert kwargs['headers']['Authorization'] == 'Bearer anon-key'
        assert kwargs['headers']['Prefer'] == 'count=exact'
        assert ('status', 'eq.new') in kwargs['params']
        assert ('offset', '50') in kwargs['params']
        assert kwargs['timeout'] == 5

    @patch('app.services.supabase.requests.get')
    def test_missing_content_range_counts_rows(self, mock_get, sb):
        mock_get.return_value = _response(json_body=[{'id': 'a'}])
        assert sb.select('v_triage_live', COLUMNS).count == 1

    @patch('app.services.supabase.requests.get')
    def test_range_not_satisfiable_is_empty_page(self, mock_get, sb):
        mock_get.return_value = _response(
            status_code=416,
            json_body={'code': 'PGRST103', 'message': 'Requested range not satisfiable'},
            content_range='*/20',
        )

        result = sb.select('v_triage_live', COLUMNS, offset=100, limit=50)

        assert result.rows == []
        assert result.count == 20

    @patch('app.services.supabase.requests.get')
    def test_http_error_raises_with_service_message(self, mock_get, sb):
        mock_get.return_value = _response(
            status_code=404,
            json_body={'code': '42P01', 'message': 'relation "public.v_triage_live" does not exist'},
        )

        with pytest.raises(SupabaseError) as exc_info:
            sb.select('v_triage_live', COLUMNS)

        assert 'does not exist' in str(exc_info.value)
        assert exc_info.value.status_code == 404
        assert exc_info.value.code == '42P01'

    @patch('app.services.supabase.requests.get')
    def test_http_error_includes_details(self, mock_get, sb):
        mock_get.return_value = _response(
            status_code=400,
            json_body={'message': 'failed to parse filter', 'details': 'unexpected "x"'},
        )
        with pytest.raises(SupabaseError, match=r'failed to parse filter \(unexpected "x"\)'):
            sb.select('articles', COLUMNS)

    @patch('app.services.supabase.requests.get')
    def test_non_json_error_uses_text(self, mock_get, sb):
        resp = _response(status_code=502, text='Bad Gateway')
        resp.json.side_effect = ValueError('no json')
        mock_get.return_value = resp

        with pytest.raises(SupabaseError, match='Bad Gateway'):
            sb.select('articles', COLUMNS)

    @patch('app.services.supabase.requests.get')
    def test_transport_error_raises_supabase_error(self, mock_get, sb):
        mock_get.side_effect = requests.ConnectionError('connection refused')

        with pytest.raises(SupabaseError, match='connection refused'):
            sb.select('v_triage_live', COLUMNS)

    @patch('app.services.supabase.requests.get')
    def test_non_list_body_raises(self, mock_get, sb):
        mock_get.return_value = _response(json_body={'id': 'a'})
        with pytest.raises(SupabaseError, match='JSON array'):
            sb.select('v_triage_live', COLUMNS)


# ---------------------------------------------------------------------------
# Null client + factory
# ---------------------------------------------------------------------------

class TestNullClient:

    def test_always_empty(self):
        result = NullSupabaseClient().select('v_triage_live', COLUMNS, offset=100, limit=50)
        assert result.rows == []
        assert result.count == 0

    def test_not_configured(self):
        assert NullSupabaseClient.configured is False


class TestBuildSupabaseClient:

    def test_real_client_with_credentials(self):
        client = build_supabase_client('https://proj.supabase.co', 'anon-key')
        assert isinstance(client, SupabaseClient)
        assert client.rest_url == 'https://proj.supabase.co/rest/v1'

    @pytest.mark.parametrize('url,key', [(None, 'k'), ('https://x.supabase.co', None), ('', '')])
    def test_null_client_without_credentials(self, url, key):
        assert isinstance(build_supabase_client(url, key), NullSupabaseClient)
