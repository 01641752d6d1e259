from rest_framework.throttling import AnonRateThrottle


class LoginRateThrottle(AnonRateThrottle):
    scope = 'login'


class MobileSyncRateThrottle(AnonRateThrottle):
    scope = 'mobile_sync'
