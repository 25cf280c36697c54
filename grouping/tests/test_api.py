# grouping/tests/test_api.py
import json

from django.contrib.auth import get_user_model
from django.test import TestCase

from core.models import Term
from grouping.services import GroupService
from roster.models import Person
from shared.constants import GroupKind, PersonRole, TermSeason


class GroupApiTest(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username='coordinator', password='pass12345')
        self.client.force_login(self.user)

        self.term = Term.objects.create(academic_year='2024/2025', season=TermSeason.ODD, is_active=True)
        self.ids = [Person.objects.create(name=f'Student {i}', role=PersonRole.STUDENT).id for i in range(1, 5)]
        GroupService.replace_groups(self.term, GroupKind.SMALL, [
            {'name': 'A', 'member_ids': self.ids[:2]},
            {'name': 'B', 'member_ids': self.ids[2:]},
        ])

    def send(self, method, url, payload=None):
        return getattr(self.client, method)(url, data=json.dumps(payload or {}), content_type='application/json')

    def test_move_members(self):
        response = self.send('post', '/api/groups/2024/1/small/members/move/', {
            'moves': [{'person_id': self.ids[0], 'group_name': 'B'}],
        })
        self.assertEqual(response.status_code, 200)
        groups = {group['name']: group['member_ids'] for group in response.json()['data']}
        self.assertEqual(groups['A'], [self.ids[1]])
        self.assertEqual(groups['B'], sorted([self.ids[0]] + self.ids[2:]))

        response = self.send('post', '/api/groups/2024/1/small/members/move/', {'moves': []})
        self.assertEqual(response.status_code, 400)

    def test_intersession_group_flow(self):
        response = self.send('post', '/api/groups/intersession/small/', {'name': 'K1', 'member_ids': self.ids[:2]})
        self.assertEqual(response.status_code, 201)
        group_id = response.json()['data']['id']

        response = self.send('post', '/api/groups/intersession/small/', {'name': 'K2', 'member_ids': self.ids[1:3]})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['error']['code'], 'CONFLICT')

        response = self.client.get('/api/groups/intersession/small/by-name/', {'name': 'K1'})
        self.assertEqual(response.json()['data']['member_ids'], sorted(self.ids[:2]))

        response = self.client.get('/api/groups/intersession/small/by-name/', {'name': 'K9'})
        self.assertEqual(response.status_code, 404)

        response = self.send('put', f'/api/groups/intersession/item/{group_id}/', {'name': 'K1', 'member_ids': self.ids[:3]})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['member_count'], 3)

        response = self.client.delete(f'/api/groups/intersession/item/{group_id}/')
        self.assertEqual(response.status_code, 200)
        response = self.client.get('/api/groups/intersession/small/')
        self.assertEqual(response.json()['data'], [])

    def test_intersession_group_needs_members(self):
        response = self.send('post', '/api/groups/intersession/large/', {'name': 'L1', 'member_ids': []})
        self.assertEqual(response.status_code, 400)
        self.assertIn('member_ids', response.json()['error']['details'])
