"""
Test suite for the catalog module
Tests: Material CRUD, name uniqueness, immutability once referenced
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from quarryops.catalog.models import Material
from quarryops.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class MaterialApiTests(TestCase):
    """Test material endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_material(self):
        response = self.client.post('/api/materials/', {'name': ' M.SAND ', 'uom': 'MT'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'M.SAND')
        self.assertIn('createdAt', response.data)

    def test_duplicate_name_rejected_case_insensitively(self):
        TestDataFactory.create_material(name='GSB')
        response = self.client.post('/api/materials/', {'name': 'gsb', 'uom': 'MT'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('name', response.data['details'])

    def test_blank_uom_rejected(self):
        response = self.client.post('/api/materials/', {'name': '40MM', 'uom': '  '})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('uom', response.data['details'])

    def test_list_and_search(self):
        TestDataFactory.create_material(name='20MM')
        TestDataFactory.create_material(name='M.SAND')
        response = self.client.get('/api/materials/')
        self.assertEqual([row['name'] for row in response.data], ['20MM', 'M.SAND'])
        response = self.client.get('/api/materials/', {'search': 'sand'})
        self.assertEqual([row['name'] for row in response.data], ['M.SAND'])

    def test_rename_unreferenced_material(self):
        material = TestDataFactory.create_material(name='Dust')
        response = self.client.patch(f'/api/materials/{material.id}/', {'name': 'Quarry dust'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Quarry dust')

    def test_referenced_material_is_frozen(self):
        material = TestDataFactory.create_material(name='12MM', uom='MT')
        TestDataFactory.create_run(material=material, produced_qty=Decimal('10'))

        response = self.client.patch(f'/api/materials/{material.id}/', {'uom': 'CFT'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('uom', response.data['details'])

        response = self.client.delete(f'/api/materials/{material.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Material.objects.filter(pk=material.pk).exists())

    def test_delete_material(self):
        material = TestDataFactory.create_material()
        response = self.client.delete(f'/api/materials/{material.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_unknown_material(self):
        response = self.client.get('/api/materials/999999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'error': 'Material not found'})
