class MobileApiHeadersMiddleware:
    """Tag responses of the mobile API with its version."""
    PREFIX = '/api/v1/mobile/'
    VERSION = '1.0'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        response = self.get_response(request)
        if (request.path or '').startswith(self.PREFIX):
            response['X-Mobile-API-Version'] = self.VERSION
            response['X-Data-Source'] = 'Juan Heart Backend'
        return response
