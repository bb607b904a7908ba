"""Tweet Archive - HTTP routers"""
