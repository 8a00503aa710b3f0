"""Management command to list platforms or check how a name resolves."""

from django.core.management.base import BaseCommand

from hashing.systems import get_platform_registry


class Command(BaseCommand):
    help = "List RetroAchievements platforms, or resolve a platform name"

    def add_arguments(self, parser):
        parser.add_argument(
            "--resolve",
            metavar="NAME",
            help="Show which platform a free-form name resolves to",
        )

    def handle(self, *args, **options):
        registry = get_platform_registry()

        name = options.get("resolve")
        if name is not None:
            match = registry.best_match(name)
            if match is None:
                key, catalog_id = registry.resolve(name)
                self.stdout.write(
                    self.style.WARNING(f"No match for '{name}' (key '{key}', id {catalog_id})")
                )
                return
            platform = match.platform
            self.stdout.write(
                self.style.SUCCESS(f"{name} -> {platform.key} (id {platform.catalog_id})")
            )
            self.stdout.write(f"Matched by: {match.phase}")
            self.stdout.write(f"Hash method: {platform.hash_method or 'unsupported'}")
            return

        for platform in registry:
            method = platform.hash_method or "-"
            self.stdout.write(f"{platform.catalog_id:>4}  {method:<24} {platform.key}")

        supported = sum(1 for p in registry if p.is_supported)
        self.stdout.write("")
        self.stdout.write(f"{len(registry)} platforms, {supported} with a hash method")
