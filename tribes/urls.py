from rest_framework.routers import DefaultRouter

from .views import TribeViewSet

router = DefaultRouter()
router.register(r"tribes", TribeViewSet, basename="tribe")

urlpatterns = router.urls
