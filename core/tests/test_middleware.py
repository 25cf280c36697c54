# core/tests/test_middleware.py
import json

from django.http import HttpResponse
from django.test import SimpleTestCase, RequestFactory, override_settings

from core.exceptions import ConflictError, InternalError, NotFoundError
from core.middleware import ExceptionHandlingMiddleware, RequestLoggingMiddleware


class ExceptionHandlingMiddlewareTest(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.middleware = ExceptionHandlingMiddleware(lambda r: HttpResponse('ok'))

    def test_passes_responses_through(self):
        response = self.middleware(self.factory.get('/api/terms/active/'))
        self.assertEqual(response.content, b'ok')

    def test_business_error_becomes_json(self):
        request = self.factory.put('/api/modules/BLK02/groups/')
        error = ConflictError("Groups already mapped to another module: A", details={'groups': {'A': 'BLK01'}})

        with self.assertLogs('core.middleware', level='WARNING'):
            response = self.middleware.process_exception(request, error)

        self.assertEqual(response.status_code, 409)
        self.assertEqual(json.loads(response.content), {
            'success': False,
            'error': {
                'code': 'CONFLICT',
                'message': 'Groups already mapped to another module: A',
                'details': {'groups': {'A': 'BLK01'}},
            },
        })

    def test_not_found(self):
        response = self.middleware.process_exception(self.factory.get('/'), NotFoundError("Module X not found"))
        self.assertEqual(response.status_code, 404)

    def test_internal_error_hides_details(self):
        error = InternalError("database password rejected", details={'host': 'db'})
        with self.assertLogs('core.middleware', level='ERROR'):
            response = self.middleware.process_exception(self.factory.get('/'), error)

        body = json.loads(response.content)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(body['error']['details'], {})
        self.assertNotIn('password', body['error']['message'])

    def test_unexpected_exception_is_500(self):
        with self.assertLogs('core.middleware', level='ERROR'):
            response = self.middleware.process_exception(self.factory.get('/'), KeyError('boom'))

        self.assertEqual(response.status_code, 500)
        self.assertEqual(json.loads(response.content)['error']['code'], 'INTERNAL_ERROR')


class RequestLoggingMiddlewareTest(SimpleTestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.middleware = RequestLoggingMiddleware(lambda r: HttpResponse(status=204))

    @override_settings(DEBUG=True)
    def test_logs_request_and_response(self):
        with self.assertLogs('core.middleware', level='DEBUG') as logs:
            response = self.middleware(self.factory.get('/api/terms/active/'))

        self.assertEqual(response.status_code, 204)
        self.assertEqual([record.getMessage() for record in logs.records], ['Request', 'Response'])
        self.assertEqual(logs.records[1].status, 204)

    def test_skips_health_checks(self):
        self.assertTrue(self.middleware._should_skip_logging(self.factory.get('/health/')))
        self.assertFalse(self.middleware._should_skip_logging(self.factory.get('/api/rooms/options/')))

    def test_client_ip_prefers_forwarded_header(self):
        request = self.factory.get('/', HTTP_X_FORWARDED_FOR='10.0.0.1, 10.0.0.2')
        self.assertEqual(self.middleware._get_client_ip(request), '10.0.0.1')
        self.assertEqual(self.middleware._get_client_ip(self.factory.get('/')), '127.0.0.1')
