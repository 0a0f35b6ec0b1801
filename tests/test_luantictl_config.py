import unittest

from luantictl.config import Settings


class TestSettings(unittest.TestCase):

    def test_defaults(self):
        settings = Settings.from_options({})
        self.assertEqual(settings, Settings())
        self.assertEqual(settings.volumes, ("luanti-games", "luanti-data", "luanti-config"))
        self.assertEqual(settings.game_path, ".minetest/games/mineclonia")
        self.assertEqual(settings.world_path, "worlds/eduquest")
        self.assertEqual(settings.game_url,
                         "https://content.eduquest.vip/packages/rubenwardy/mineclonia/download")

    def test_environment(self):
        settings = Settings.from_options({"--port": None}, {"PORT": "31000", "WORLD_NAME": "lobby"})
        self.assertEqual(settings.port, 31000)
        self.assertEqual(settings.world, "lobby")

    def test_empty_environment(self):
        settings = Settings.from_options({}, {"PORT": "", "IMAGE": "", "WORLD_NAME": ""})
        self.assertEqual(settings, Settings())

    def test_empty_option(self):
        settings = Settings.from_options({"--port": "", "--image": ""},
                                         {"PORT": "31000", "IMAGE": "luanti:5.9"})
        self.assertEqual(settings.port, 31000)
        self.assertEqual(settings.image, "luanti:5.9")

    def test_option_over_environment(self):
        settings = Settings.from_options({"--port": "32000", "--data-volume": "alt-data"},
                                         {"PORT": "31000"})
        self.assertEqual(settings.port, 32000)
        self.assertEqual(settings.data_volume, "alt-data")

    def test_bad_port(self):
        for port in ("http", "0", "70000"):
            with self.assertRaises(ValueError):
                Settings.from_options({"--port": port})

    def test_immutable(self):
        settings = Settings()
        with self.assertRaises(AttributeError):
            settings.port = 1

    def test_launch_spec(self):
        spec = Settings(container="alt", image="luanti:5.9", game_id="voxelibre").launch_spec()
        self.assertEqual(spec.name, "alt")
        self.assertEqual(spec.image, "luanti:5.9")
        self.assertEqual(spec.game_id, "voxelibre")
        self.assertEqual(spec.world, "/var/lib/minetest/worlds/eduquest")
        self.assertEqual(spec.config, "/etc/minetest/minetest.conf")


if __name__ == "__main__":
    unittest.main()
