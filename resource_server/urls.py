from django.contrib.staticfiles.urls import staticfiles_urlpatterns

# Production static files are served by WhiteNoise; this only adds the DEBUG finder view.
urlpatterns = staticfiles_urlpatterns()
