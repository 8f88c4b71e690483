"""Sessions: login/logout, the in-memory token store and route dependencies."""
