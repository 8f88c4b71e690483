"""
Shared, cross-cutting code for the service.

`core/` contains small building blocks that multiple features use
(DB wiring, settings, file storage, response envelope, Turnstile client).
Keep feature-specific SQL and business logic in the corresponding feature
package (e.g. `items/`, `delivery/`).
"""
