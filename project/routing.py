from marketplace.routing import websocket_urlpatterns as marketplace_ws

# Aggregate websocket URL patterns from apps
websocket_urlpatterns = []
websocket_urlpatterns += marketplace_ws
