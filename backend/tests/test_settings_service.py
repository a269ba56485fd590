import unittest

from sealtrack.services.document_store import InMemoryDocumentStore
from sealtrack.services.entities import INTEGRATION_SETTINGS_ID, SETTINGS
from sealtrack.services.settings_service import (
    DEFAULT_ORGANIZATION,
    MASK,
    SettingsService,
    SettingsValidationError,
    mask_secrets,
)


class SettingsServiceTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryDocumentStore()
        self.settings = SettingsService(self.store)

    def test_defaults_when_nothing_stored(self):
        org = self.settings.get_organization()
        self.assertEqual(org, DEFAULT_ORGANIZATION)
        self.assertEqual(org["primaryColor"], "#FFEE00")
        self.assertEqual(org["secondaryColor"], "#223F7F")

        integrations = self.settings.get_integrations()
        self.assertFalse(integrations["whatsapp"]["enabled"])
        self.assertEqual(integrations["email"]["provider"], "smtp")

    def test_update_merges_over_stored_values(self):
        self.settings.update_organization({"name": "Port Authority", "website": "https://example.org"})
        org = self.settings.update_organization({"name": "Port Authority Ltd"})

        self.assertEqual(org["name"], "Port Authority Ltd")
        self.assertEqual(org["website"], "https://example.org")
        self.assertEqual(org["primaryColor"], "#FFEE00")

    def test_nested_integration_maps_merge(self):
        self.settings.update_integrations({"email": {"templates": {"sealIssued": "Issued {{serial}}"}}})
        self.settings.update_integrations({"email": {"templates": {"sealDamaged": "Damaged {{serial}}"}}})

        templates = self.settings.get_integrations()["email"]["templates"]
        self.assertEqual(templates["sealIssued"], "Issued {{serial}}")
        self.assertEqual(templates["sealDamaged"], "Damaged {{serial}}")
        self.assertEqual(templates["sealReceived"], "")

    def test_api_keys_are_masked(self):
        result = self.settings.update_integrations({"whatsapp": {"enabled": True, "apiKey": "wa-secret"}})

        self.assertEqual(result["whatsapp"]["apiKey"], MASK)
        self.assertEqual(self.settings.get_integrations()["whatsapp"]["apiKey"], MASK)
        self.assertEqual(self.settings.get_integrations(reveal_secrets=True)["whatsapp"]["apiKey"], "wa-secret")
        # empty keys are left unmasked
        self.assertEqual(result["email"]["apiKey"], "")

    def test_echoed_mask_keeps_stored_key(self):
        self.settings.update_integrations({"email": {"apiKey": "sg-secret"}})
        self.settings.update_integrations({"email": {"apiKey": MASK, "fromName": "Seal Desk"}})

        revealed = self.settings.get_integrations(reveal_secrets=True)
        self.assertEqual(revealed["email"]["apiKey"], "sg-secret")
        self.assertEqual(revealed["email"]["fromName"], "Seal Desk")

    def test_reads_are_cached_until_invalidated(self):
        self.settings.get_organization()
        self.store.set(SETTINGS, "organization", {"name": "Changed elsewhere"})

        self.assertEqual(self.settings.get_organization()["name"], "")
        self.settings.invalidate()
        self.assertEqual(self.settings.get_organization()["name"], "Changed elsewhere")

    def test_returned_settings_are_copies(self):
        org = self.settings.get_organization()
        org["name"] = "mutated"
        self.assertEqual(self.settings.get_organization()["name"], "")

    def test_update_persists_to_store(self):
        self.settings.update_integrations({"email": {"provider": "sendgrid"}})
        doc = self.store.get(SETTINGS, INTEGRATION_SETTINGS_ID)
        self.assertEqual(doc.data, {"email": {"provider": "sendgrid"}})

    def test_validation(self):
        bad_updates = [
            ({}, self.settings.update_organization),
            ({"nickname": "x"}, self.settings.update_organization),
            ({"primaryColor": "yellow"}, self.settings.update_organization),
            ({"name": 42}, self.settings.update_organization),
            ({"email": {"provider": "carrier-pigeon"}}, self.settings.update_integrations),
            ({"whatsapp": {"enabled": "yes"}}, self.settings.update_integrations),
            ({"whatsapp": "on"}, self.settings.update_integrations),
        ]
        for changes, update in bad_updates:
            with self.subTest(changes=changes):
                with self.assertRaises(SettingsValidationError):
                    update(changes)

        self.assertIsNone(self.store.get(SETTINGS, "organization"))

    def test_short_hex_color_accepted(self):
        self.assertEqual(self.settings.update_organization({"primaryColor": "#FE0"})["primaryColor"], "#FE0")

    def test_get_all(self):
        self.settings.update_integrations({"whatsapp": {"apiKey": "k"}})
        everything = self.settings.get_all()
        self.assertEqual(set(everything), {"organization", "integrations"})
        self.assertEqual(everything["integrations"]["whatsapp"]["apiKey"], MASK)


    def test_subscribe_delivers_now_and_after_each_write(self):
        seen = []
        subscription = self.settings.subscribe(seen.append)

        self.settings.update_organization({"name": "Port Authority"})
        self.settings.update_integrations({"email": {"apiKey": "sg-secret"}})
        subscription.cancel()
        self.settings.update_organization({"name": "After cancel"})

        self.assertEqual(len(seen), 3)
        self.assertEqual(seen[0]["organization"]["name"], "")
        self.assertEqual(seen[1]["organization"]["name"], "Port Authority")
        self.assertEqual(seen[2]["integrations"]["email"]["apiKey"], MASK)

    def test_subscription_picks_up_writes_from_other_instances(self):
        seen = []
        subscription = self.settings.subscribe(seen.append)

        SettingsService(self.store).update_organization({"name": "Changed elsewhere"})

        self.assertEqual(seen[-1]["organization"]["name"], "Changed elsewhere")
        self.assertEqual(self.settings.get_organization()["name"], "Changed elsewhere")
        subscription.cancel()


class MaskSecretsTests(unittest.TestCase):
    def test_only_api_keys_are_masked(self):
        masked = mask_secrets({"a": {"apiKey": "x", "fromEmail": "ops@example.org"}, "apiKey": ""})
        self.assertEqual(masked, {"a": {"apiKey": MASK, "fromEmail": "ops@example.org"}, "apiKey": ""})


if __name__ == "__main__":
    unittest.main()
