"""Management command to compute the RetroAchievements hash of a file."""

import asyncio
import json

from django.core.management.base import BaseCommand, CommandError

from hashing.dispatcher import compute_hash
from hashing.temp import cleanup_temp_directory


class Command(BaseCommand):
    help = "Compute the RetroAchievements hash of a ROM or disc image"

    def add_arguments(self, parser):
        parser.add_argument(
            "path",
            type=str,
            help="Path to the file to hash (archives are unpacked as needed)",
        )
        parser.add_argument(
            "--platform",
            required=True,
            help="Platform name, e.g. 'SNES' or 'Sega Genesis'",
        )
        parser.add_argument(
            "--ext",
            action="append",
            default=[],
            dest="extensions",
            help="Launchable extension to look for inside archives (repeatable)",
        )
        parser.add_argument(
            "--keep-temp",
            action="store_true",
            help="Don't delete the extraction directory afterwards",
        )
        parser.add_argument(
            "--json",
            action="store_true",
            help="Print the full result as JSON",
        )

    def handle(self, *args, **options):
        result = asyncio.run(
            compute_hash(options["path"], options["platform"], options["extensions"])
        )

        try:
            if options["json"]:
                data = result.to_dict()
                if result.error_kind:
                    data["errorKind"] = result.error_kind.value
                self.stdout.write(json.dumps(data, indent=2))
            elif result.success:
                self.stdout.write(result.hash)

            if options["keep_temp"] and result.temp_directory:
                self.stderr.write(f"Temp directory kept: {result.temp_directory}")
        finally:
            if not options["keep_temp"]:
                cleanup_temp_directory(result.temp_directory)

        if not result.success:
            raise CommandError(f"{result.error_kind.value}: {result.error_message}")
