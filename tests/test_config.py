import unittest

from menu_scraper.config import (
    ScraperConfig,
    _parse_bool,
    _parse_viewport,
    create_config,
    create_config_from_env,
    create_config_from_form,
)


class ParseHelperTests(unittest.TestCase):
    def test_parse_bool_accepts_common_spellings(self) -> None:
        for raw, expected in [("true", True), ("0", False), ("Yes", True), ("off", False), (True, True)]:
            with self.subTest(raw=raw):
                self.assertEqual(_parse_bool(raw, not expected), expected)
        self.assertTrue(_parse_bool("maybe", True))

    def test_parse_viewport_formats(self) -> None:
        self.assertEqual(_parse_viewport("1280x720", (1, 1)), (1280, 720))
        self.assertEqual(_parse_viewport("1024,768", (1, 1)), (1024, 768))
        self.assertEqual(_parse_viewport([800, 600], (1, 1)), (800, 600))
        self.assertEqual(_parse_viewport("wide", (1920, 1080)), (1920, 1080))


class CreateConfigTests(unittest.TestCase):
    def test_environment_variables_with_prefix_are_applied(self) -> None:
        config = create_config_from_env(
            {
                "MENU_SCRAPER_HEADLESS": "false",
                "MENU_SCRAPER_MODAL_TIMEOUT_MS": "2500",
                "MENU_SCRAPER_VIEWPORT": "1280x720",
                "MENU_SCRAPER_OUTPUT_DIR": "/tmp/menus",
                "MENU_SCRAPER_SELECTOR_TIMEOUT_MS": "soon",
                "HEADLESS": "true",
            }
        )
        self.assertFalse(config.headless)
        self.assertEqual(config.modal_timeout_ms, 2500)
        self.assertEqual(config.viewport, (1280, 720))
        self.assertEqual(config.output_dir, "/tmp/menus")
        self.assertEqual(config.selector_timeout_ms, 30000)

    def test_form_overrides_do_not_mutate_base(self) -> None:
        base = ScraperConfig(output_dir="/srv/menus")

        config = create_config_from_form({"interactive_images": "no", "max_interactive_items": "5"}, base=base)

        self.assertFalse(config.interactive_images)
        self.assertEqual(config.max_interactive_items, 5)
        self.assertEqual(config.output_dir, "/srv/menus")
        self.assertTrue(base.interactive_images)
        self.assertEqual(base.max_interactive_items, 40)

    def test_create_config_dispatches_on_payload_type(self) -> None:
        base = ScraperConfig(output_dir="/srv/menus")
        self.assertIs(create_config(None, base=base), base)
        self.assertFalse(create_config({"headless": "0"}, base=base).headless)
        with self.assertRaises(TypeError):
            create_config("headless=false")  # type: ignore[arg-type]

    def test_to_dict_is_json_ready(self) -> None:
        payload = ScraperConfig(viewport=(800, 600), output_dir="/out").to_dict()
        self.assertEqual(payload["viewport"], [800, 600])
        self.assertEqual(payload["output_dir"], "/out")
        self.assertIsNone(payload["debug_dir"])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
