from django.apps import AppConfig


class CrusherConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'quarryops.crusher'
