"""Pack management command handling for the soundpack-ctrl CLI."""

import sys
from pathlib import Path

from soundpack_ctrl.cli_helpers import exit_with_error, map_exception_to_exit_code, settings_from_args
from soundpack_ctrl.common.constants import ExitCodes
from soundpack_ctrl.common.errors import PackNotFoundError, StructuralViolationError
from soundpack_ctrl.core.installer import PackInstaller
from soundpack_ctrl.core.library import PackLibrary
from soundpack_ctrl.core.manifest import fetch_merged_manifest, find_pack, outdated_packs


class PacksCommand:
    """Handles pack management commands."""

    @staticmethod
    def add_parser(subparsers) -> None:
        """Add packs command parser to subparsers."""
        parser = subparsers.add_parser('packs', help='Interface for sound pack management')

        pack_subparsers = parser.add_subparsers(dest='pack_action', help='Pack actions')

        pack_subparsers.add_parser('list', help='List installed packs')
        pack_subparsers.add_parser('available', help='List packs offered by the configured registries')

        install_parser = pack_subparsers.add_parser('install', help='Install a pack from a ZIP file or URL')
        install_parser.add_argument('source', help='Path or http(s) URL of the pack ZIP')
        install_parser.add_argument('--id', dest='pack_id', required=True, help='Pack id (top-level directory)')

        download_parser = pack_subparsers.add_parser('download', help='Install a pack listed in a registry')
        download_parser.add_argument('pack_id', help='The registry pack id')

        update_parser = pack_subparsers.add_parser('update', help='Reinstall packs whose registry version changed')
        update_parser.add_argument('pack_id', nargs='?', help='Only update this pack')

        uninstall_parser = pack_subparsers.add_parser('uninstall', help='Remove an installed pack')
        uninstall_parser.add_argument('pack_id', help='The pack id to remove')

        activate_parser = pack_subparsers.add_parser('activate', help='Make a pack the active pack')
        activate_parser.add_argument('pack_id', help='The pack id to activate')

        create_parser = pack_subparsers.add_parser('create', help='Create an empty pack with all event directories')
        create_parser.add_argument('pack_id', help='The new pack id')

        preview_parser = pack_subparsers.add_parser('preview', help='Pick a random sound from a pack')
        preview_parser.add_argument('pack_id', help='The pack id to preview')

        parser.set_defaults(func=PacksCommand.execute)

    @staticmethod
    def execute(args) -> None:
        """Execute a pack management command."""
        actions = {
            'list': PacksCommand._list_packs,
            'available': PacksCommand._list_available,
            'install': PacksCommand._install,
            'download': PacksCommand._download,
            'update': PacksCommand._update,
            'uninstall': PacksCommand._uninstall,
            'activate': PacksCommand._activate,
            'create': PacksCommand._create,
            'preview': PacksCommand._preview,
        }
        action = actions.get(getattr(args, 'pack_action', None))
        if action is None:
            print("Please specify a pack action: " + ", ".join(actions))
            sys.exit(ExitCodes.OK)

        try:
            action(args)
        except Exception as exc:
            exit_code = map_exception_to_exit_code(exc)
            if exit_code is None:
                raise
            if isinstance(exc, StructuralViolationError):
                for message in exc.report.messages():
                    print(message, file=sys.stderr)
            exit_with_error(str(exc), exit_code)

    @staticmethod
    def _list_packs(args) -> None:
        library = PackLibrary.from_settings(settings_from_args(args))
        packs = library.installed_pack_ids()
        print("Installed packs:")
        if not packs:
            print("  No packs installed.")
            return
        active = library.active_pack_id()
        for pack_id in packs:
            record = library.database.get_pack(pack_id)
            name = record.name if record and record.name else pack_id
            version = f" v{record.version}" if record and record.version else ""
            marker = " (active)" if pack_id == active else ""
            print(f"  {pack_id}: {name}{version}{marker}")

    @staticmethod
    def _list_available(args) -> None:
        settings = settings_from_args(args)
        library = PackLibrary.from_settings(settings)
        installed = set(library.installed_pack_ids())
        manifest = fetch_merged_manifest(settings.registry_urls(), timeout=settings.download_timeout())
        print("Available packs:")
        if not manifest.packs:
            print("  No packs found.")
            return
        for pack in manifest.packs:
            status = " [installed]" if pack.id in installed else ""
            print(f"  {pack.id}: {pack.name} v{pack.version} - {pack.description}{status}")

    @staticmethod
    def _install(args) -> None:
        settings = settings_from_args(args)
        installer = PackInstaller.from_settings(settings)
        source = args.source
        if source.lower().startswith(('http://', 'https://')):
            if not installer.install_from_url(source, args.pack_id):
                exit_with_error(
                    f"Could not download or install pack '{args.pack_id}'. See the log for details.",
                    ExitCodes.DOWNLOAD_FAILED,
                )
            result_path = installer.sounds_dir / args.pack_id
            print(f"Installed pack '{args.pack_id}' into {result_path}.")
        else:
            result = installer.install_archive(Path(source), args.pack_id)
            print(
                f"Installed pack '{result.pack_id}' into {result.path} "
                f"({result.files_installed} files, {result.files_removed} rejected)."
            )
        PacksCommand._auto_activate(args)

    @staticmethod
    def _download(args) -> None:
        settings = settings_from_args(args)
        manifest = fetch_merged_manifest(settings.registry_urls(), timeout=settings.download_timeout())
        info = find_pack(manifest, args.pack_id)
        if info is None:
            raise PackNotFoundError(f"Pack '{args.pack_id}' is not listed in any registry")
        installer = PackInstaller.from_settings(settings)
        if not installer.install_pack_info(info):
            exit_with_error(
                f"Could not download or install pack '{info.id}'. See the log for details.",
                ExitCodes.DOWNLOAD_FAILED,
            )
        print(f"Installed pack '{info.id}' version {info.version}.")
        PacksCommand._auto_activate(args)

    @staticmethod
    def _update(args) -> None:
        settings = settings_from_args(args)
        installer = PackInstaller.from_settings(settings)
        manifest = fetch_merged_manifest(settings.registry_urls(), timeout=settings.download_timeout())
        candidates = outdated_packs(installer.database, manifest)
        if args.pack_id:
            candidates = [info for info in candidates if info.id == args.pack_id]
        if not candidates:
            print("All packs are up to date.")
            return
        failed = []
        for info in candidates:
            if installer.install_pack_info(info):
                print(f"Updated pack '{info.id}' to version {info.version}.")
            else:
                failed.append(info.id)
        if failed:
            exit_with_error(f"Could not update: {', '.join(failed)}", ExitCodes.DOWNLOAD_FAILED)

    @staticmethod
    def _uninstall(args) -> None:
        library = PackLibrary.from_settings(settings_from_args(args))
        library.uninstall_pack(args.pack_id)
        print(f"Uninstalled pack '{args.pack_id}'.")

    @staticmethod
    def _activate(args) -> None:
        library = PackLibrary.from_settings(settings_from_args(args))
        library.set_active_pack(args.pack_id)
        print(f"Activated pack '{args.pack_id}'.")

    @staticmethod
    def _create(args) -> None:
        library = PackLibrary.from_settings(settings_from_args(args))
        path = library.create_pack(args.pack_id)
        print(f"Created pack '{args.pack_id}' at {path}.")

    @staticmethod
    def _preview(args) -> None:
        library = PackLibrary.from_settings(settings_from_args(args))
        picked = library.pick_random_sound(args.pack_id)
        if picked is None:
            print(f"Pack '{args.pack_id}' has no sounds.")
            return
        relative, data = picked
        print(f"{library.pack_path(args.pack_id) / relative} ({len(data)} bytes)")

    @staticmethod
    def _auto_activate(args) -> None:
        settings = settings_from_args(args)
        if settings.auto_activate():
            PackLibrary.from_settings(settings).ensure_active_pack()
