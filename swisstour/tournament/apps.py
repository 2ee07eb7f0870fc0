from django.apps import AppConfig


class TournamentConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'swisstour.tournament'
    verbose_name = 'Swiss Tournament Rounds'
