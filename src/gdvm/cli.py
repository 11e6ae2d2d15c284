from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
import textwrap
from pathlib import Path

from ._version import __version__
from .app import App
from .config import Config, config_path, load_config, redact_token, save_config
from .errors import GdvmError, GithubHTTPError
from .semver import VersionSpec, build_spec, parse_release

VERSION_HELP = "Version in the format x.x.x.x, x.x.x or x.x"
RELEASE_HELP = "Release to use (dev1, alpha2, beta3, rc4, stable, etc)"

_TRUTHY = ("1", "true", "yes", "on")


def _merge_cfg(base: Config, args: argparse.Namespace) -> Config:
    # Env overrides config; CLI overrides both.
    releases_url = getattr(args, "releases_url", None) or os.getenv("GDVM_RELEASES_URL") or base.releases_url
    github_token = getattr(args, "github_token", None) or os.getenv("GITHUB_TOKEN") or base.github_token
    timeout_s = getattr(args, "timeout_s", None) or os.getenv("GDVM_TIMEOUT_S") or base.timeout_s
    try:
        timeout_s_f = float(timeout_s)
    except (TypeError, ValueError):
        timeout_s_f = base.timeout_s

    verbose = bool(getattr(args, "verbose", None)) or base.verbose
    if (env_verbose := os.getenv("GDVM_VERBOSE")) is not None:
        verbose = verbose or env_verbose.strip().lower() in _TRUTHY

    return dataclasses.replace(
        base,
        releases_url=releases_url,
        github_token=github_token,
        timeout_s=timeout_s_f,
        verbose=verbose,
    )


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    # httpx/httpcore debug output is far noisier than our own tracing.
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gdvm",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="Godot version manager: install side-by-side Godot versions and build templates.",
        epilog=textwrap.dedent(
            """\
            Environment variables:
              GDVM_CONFIG_PATH, GDVM_RELEASES_URL, GDVM_TIMEOUT_S, GDVM_VERBOSE, GITHUB_TOKEN
            """
        ),
    )

    def _add_runtime_overrides(parser: argparse.ArgumentParser, default=argparse.SUPPRESS) -> None:
        # Accepted both before and after subcommands, e.g. `gdvm -v godot list` and `gdvm godot list -v`.
        # Subcommands suppress their defaults so they do not overwrite values given earlier.
        parser.add_argument("-v", "--verbose", action="store_true", default=default, help="Trace requests and paths")
        parser.add_argument("--releases-url", default=default, help="GitHub releases API URL")
        parser.add_argument("--github-token", default=default, help="GitHub token (raises API rate limits)")
        parser.add_argument("--timeout-s", type=float, default=default, help="HTTP timeout in seconds")

    def _add_version_args(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("version", help=VERSION_HELP)
        parser.add_argument("--release", default="stable", help=RELEASE_HELP)
        parser.add_argument("--mono", action="store_true", help="Use mono version")

    _add_runtime_overrides(p, default=None)
    p.add_argument("--version", action="version", version=f"gdvm {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # godot / build-templates
    for name, what in (("godot", "Godot"), ("build-templates", "build templates")):
        artifact = sub.add_parser(name, help=f"Manage {what} versions")
        artifact_sub = artifact.add_subparsers(dest="subcmd", required=True)

        download = artifact_sub.add_parser("download", help=f"Download {what} to the cache by version")
        _add_runtime_overrides(download)
        _add_version_args(download)

        install = artifact_sub.add_parser("install", help=f"Download and install {what} by version")
        _add_runtime_overrides(install)
        _add_version_args(install)
        install.add_argument("--force", action="store_true", help="Remove an existing install first")

        uninstall = artifact_sub.add_parser("uninstall", help=f"Uninstall {what} by version")
        _add_runtime_overrides(uninstall)
        _add_version_args(uninstall)

        ls = artifact_sub.add_parser("list", help=f"List installed {what} versions")
        _add_runtime_overrides(ls)

        if name == "godot":
            use = artifact_sub.add_parser("use", help="Point the godot link at an installed version")
            _add_runtime_overrides(use)
            _add_version_args(use)

            current = artifact_sub.add_parser("current", help="Show what the godot link points at")
            _add_runtime_overrides(current)

    # versions
    versions = sub.add_parser("versions", help="Upstream versions")
    versions_sub = versions.add_subparsers(dest="subcmd", required=True)
    versions_list = versions_sub.add_parser("list", help="List versions published upstream")
    _add_runtime_overrides(versions_list)
    versions_list.add_argument("--release", help="Only show this release channel (e.g. stable, beta, rc1)")

    # config
    cfg = sub.add_parser("config", help="Manage local config")
    cfg_sub = cfg.add_subparsers(dest="subcmd", required=True)
    cfg_sub.add_parser("path", help="Print config path")
    cfg_sub.add_parser("show", help="Show config (token redacted)")

    cfg_set = cfg_sub.add_parser("set", help="Set config fields")
    cfg_set.add_argument("--releases-url")
    cfg_set.add_argument("--github-token")
    cfg_set.add_argument("--timeout-s", type=float)
    cfg_set.add_argument("--verbose", choices=("true", "false"))
    cfg_set.add_argument("--godot-root-directory")
    cfg_set.add_argument("--build-templates-root-directory")
    cfg_set.add_argument("--cache-directory")
    cfg_set.add_argument("--bin-directory")

    return p


def _spec(args: argparse.Namespace) -> VersionSpec:
    return build_spec(args.version, args.release, args.mono)


def _make_app(args: argparse.Namespace) -> App:
    cfg = _merge_cfg(load_config(), args)
    _setup_logging(cfg.verbose)
    return App(cfg)


def cmd_artifact(args: argparse.Namespace) -> int:
    # Parse the version before anything touches the network or disk.
    spec = _spec(args) if args.subcmd in ("download", "install", "uninstall", "use") else None

    with _make_app(args) as app:
        service = app.godot if args.cmd == "godot" else app.build_templates
        if args.subcmd == "download":
            service.download(spec)
            return 0
        if args.subcmd == "install":
            service.install(spec, force=args.force)
            return 0
        if args.subcmd == "uninstall":
            service.uninstall(spec, log_missing=True)
            return 0
        if args.subcmd == "list":
            service.list()
            return 0
        if args.subcmd == "use":
            app.godot.use(spec)
            return 0
        if args.subcmd == "current":
            target = app.godot.current()
            print(str(target) if target else "No Godot version in use")
            return 0

    raise AssertionError("unreachable")


def cmd_versions(args: argparse.Namespace) -> int:
    release = parse_release(args.release) if args.release else None
    with _make_app(args) as app:
        app.versions.list(release)
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    if args.subcmd == "path":
        print(str(config_path()))
        return 0

    if args.subcmd == "show":
        cfg = load_config()
        d = dataclasses.asdict(cfg)
        d["github_token"] = redact_token(cfg.github_token)
        d["resolved"] = {
            "godot_root": str(cfg.godot_root),
            "build_templates_root": str(cfg.build_templates_root),
            "cache_root": str(cfg.cache_root),
            "bin_root": str(cfg.bin_root),
        }
        print(json.dumps(d, indent=2, sort_keys=True))
        return 0

    if args.subcmd == "set":
        cfg = load_config()
        changes = {
            k: v
            for k, v in {
                "releases_url": args.releases_url,
                "github_token": args.github_token,
                "timeout_s": args.timeout_s,
                "godot_root_directory": args.godot_root_directory,
                "build_templates_root_directory": args.build_templates_root_directory,
                "cache_directory": args.cache_directory,
                "bin_directory": args.bin_directory,
            }.items()
            if v is not None
        }
        for key in ("godot_root_directory", "build_templates_root_directory", "cache_directory", "bin_directory"):
            if key in changes:
                changes[key] = str(Path(changes[key]).expanduser().absolute())
        if args.verbose is not None:
            changes["verbose"] = args.verbose == "true"
        path = save_config(dataclasses.replace(cfg, **changes))
        print(f"Saved: {path}")
        return 0

    raise AssertionError("unreachable")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.cmd in ("godot", "build-templates"):
            return cmd_artifact(args)
        if args.cmd == "versions":
            return cmd_versions(args)
        if args.cmd == "config":
            return cmd_config(args)
        raise AssertionError("unreachable")
    except GithubHTTPError as e:
        print(f"error: GitHub API returned HTTP {e.status_code}", file=sys.stderr)
        return 1
    except GdvmError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
