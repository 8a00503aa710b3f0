from django.apps import AppConfig


class HashingConfig(AppConfig):
    name = "hashing"
    verbose_name = "RetroAchievements hashing"

    def ready(self):
        # Build the platform table once so requests only ever read it
        from .systems import get_platform_registry

        get_platform_registry()
