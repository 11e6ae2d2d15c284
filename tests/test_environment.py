import unittest

from gdvm.environment import Environment, ReleaseCatalog, select
from gdvm.errors import NotFoundError
from gdvm.platforms import LINUX_X86_64, WINDOWS_X86_64
from gdvm.semver import Channel, Release, Semver, Version, build_spec


def _release(tag: str, *asset_names: str) -> dict:
    return {
        "tag_name": tag,
        "assets": [
            {"name": n, "browser_download_url": f"https://github.com/godotengine/godot-builds/releases/download/{tag}/{n}"}
            for n in asset_names
        ],
    }


def _godot_release(tag: str, *, mono: bool = True) -> dict:
    names = [f"Godot_v{tag}_linux.x86_64.zip", f"Godot_v{tag}_win64.exe.zip", f"Godot_v{tag}_export_templates.tpz"]
    if mono:
        names += [f"Godot_v{tag}_mono_linux_x86_64.zip", f"Godot_v{tag}_mono_export_templates.tpz"]
    return _release(tag, *names)


class FakeCatalogClient:
    def __init__(self, releases: list[dict]) -> None:
        self._releases = releases
        self.list_calls = 0

    def list_releases(self) -> list[dict]:
        self.list_calls += 1
        return list(self._releases)


def _env(releases: list[dict], platform=LINUX_X86_64) -> tuple[Environment, FakeCatalogClient]:
    client = FakeCatalogClient(releases)
    return Environment(ReleaseCatalog(client), platform), client


class TestResolution(unittest.TestCase):
    def setUp(self) -> None:
        self.env, self.client = _env(
            [
                _godot_release("4.3-stable"),
                _godot_release("4.2.2-stable"),
                _godot_release("4.2.1-stable"),
                _godot_release("4.4-beta1"),
                _godot_release("4.4-beta3"),
                _godot_release("4.4-rc1"),
                _godot_release("3.5.3-stable"),
            ]
        )

    def _resolve(self, version: str, release: str = "stable", mono: bool = False) -> Semver:
        semver, _ = self.env.fetch_asset(build_spec(version, release, mono), self.env.godot_assets)
        return semver

    def test_unspecified_components_take_the_highest_available(self) -> None:
        self.assertEqual(self._resolve("4").version, Version(4, 3, 0, 0))
        self.assertEqual(self._resolve("4.2").version, Version(4, 2, 2, 0))
        self.assertEqual(self._resolve("4.2.1").version, Version(4, 2, 1, 0))
        self.assertEqual(self._resolve("3").version, Version(3, 5, 3, 0))

    def test_stable_never_matches_prereleases(self) -> None:
        self.assertEqual(self._resolve("4").release, Release(Channel.STABLE))
        with self.assertRaises(NotFoundError):
            self._resolve("4.4")

    def test_channel_number_is_matched_when_given(self) -> None:
        self.assertEqual(self._resolve("4.4", "beta1").release, Release(Channel.BETA, 1))
        self.assertEqual(self._resolve("4", "rc").release, Release(Channel.RC, 1))
        with self.assertRaises(NotFoundError):
            self._resolve("4.4", "beta2")

    def test_channel_without_number_prefers_the_latest_number(self) -> None:
        self.assertEqual(self._resolve("4.4", "beta").release, Release(Channel.BETA, 3))

    def test_asset_matches_platform_and_mono(self) -> None:
        spec = build_spec("4.2.1", "stable", False)
        _, asset = self.env.fetch_asset(spec, self.env.godot_assets)
        self.assertEqual(asset.name, "Godot_v4.2.1-stable_linux.x86_64.zip")

        semver, asset = self.env.fetch_asset(build_spec("4.2.1", "stable", True), self.env.godot_assets)
        self.assertTrue(semver.mono)
        self.assertEqual(asset.name, "Godot_v4.2.1-stable_mono_linux_x86_64.zip")

        _, asset = self.env.fetch_asset(spec, self.env.build_templates_assets)
        self.assertEqual(asset.name, "Godot_v4.2.1-stable_export_templates.tpz")

    def test_missing_version_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            self._resolve("5")
        with self.assertRaises(NotFoundError):
            self._resolve("4.2.9")

    def test_catalog_is_fetched_once_per_environment(self) -> None:
        self._resolve("4")
        self._resolve("4.2")
        self._resolve("3")
        self.assertEqual(self.client.list_calls, 1)


class TestAssetSelection(unittest.TestCase):
    def test_release_without_mono_build_is_not_found(self) -> None:
        env, _ = _env([_godot_release("4.2-stable", mono=False)])
        with self.assertRaises(NotFoundError):
            env.fetch_asset(build_spec("4.2", "stable", True), env.godot_assets)

    def test_release_without_build_for_this_platform_is_not_found(self) -> None:
        env, _ = _env([_release("4.2-stable", "Godot_v4.2-stable_macos.universal.zip")])
        with self.assertRaises(NotFoundError):
            env.fetch_asset(build_spec("4.2"), env.godot_assets)

    def test_windows_platform_picks_win64(self) -> None:
        env, _ = _env([_godot_release("4.2.1-stable")], platform=WINDOWS_X86_64)
        _, asset = env.fetch_asset(build_spec("4.2"), env.godot_assets)
        self.assertEqual(asset.name, "Godot_v4.2.1-stable_win64.exe.zip")

    def test_godot3_linux_naming(self) -> None:
        env, _ = _env([_release("3.5.3-stable", "Godot_v3.5.3-stable_x11.64.zip", "Godot_v3.5.3-stable_mono_x11_64.zip")])
        _, asset = env.fetch_asset(build_spec("3.5"), env.godot_assets)
        self.assertEqual(asset.name, "Godot_v3.5.3-stable_x11.64.zip")
        _, asset = env.fetch_asset(build_spec("3.5", mono=True), env.godot_assets)
        self.assertEqual(asset.name, "Godot_v3.5.3-stable_mono_x11_64.zip")

    def test_unparseable_tags_are_ignored(self) -> None:
        env, _ = _env([_release("nightly"), {"name": "no tag"}, _godot_release("4.2-stable")])
        self.assertEqual(len(env.available()), 1)


class TestSelect(unittest.TestCase):
    def test_select_over_local_candidates(self) -> None:
        installed = [
            Semver(Version(4, 2, 1, 0), Release(Channel.STABLE)),
            Semver(Version(4, 1, 0, 0), Release(Channel.STABLE)),
            Semver(Version(4, 3, 0, 0), Release(Channel.BETA, 1)),
        ]
        pick = select(build_spec("4"), installed, version=lambda s: s.version, release=lambda s: s.release)
        self.assertEqual(pick, installed[0])
        self.assertIsNone(select(build_spec("5"), installed, version=lambda s: s.version, release=lambda s: s.release))

    def test_available_filters_by_channel(self) -> None:
        env, _ = _env([_godot_release("4.3-stable"), _godot_release("4.4-beta1")])
        self.assertEqual([str(r.release) for r in env.available(Release(Channel.BETA))], ["beta1"])
        self.assertEqual(len(env.available()), 2)


if __name__ == "__main__":
    unittest.main()
