from django.conf import settings
from django.test import SimpleTestCase
from django.utils.module_loading import import_string


class MiddlewareSettingsTests(SimpleTestCase):
    def test_every_middleware_is_importable(self):
        for path in settings.MIDDLEWARE:
            with self.subTest(path=path):
                self.assertTrue(callable(import_string(path)))

    def test_only_framework_middleware_is_installed(self):
        local = [path for path in settings.MIDDLEWARE if path.startswith('medcoding.')]
        self.assertEqual(local, [])
