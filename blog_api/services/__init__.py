# Services package.
#
# The workflow layer: each module composes the repositories, the asset
# store and the credential service for one aggregate:
#
#   post_service  — create/edit/delete with ownership + file lifecycle,
#                   cached feed reads
#   user_service  — register, login, profile, avatar, author list
#
# Service functions take an AsyncSession first so the router layer owns the
# transaction boundary via ``get_db``.  The authenticated caller arrives as
# an explicit ``AuthContext`` argument.  Failures are raised as
# ``blog_api.errors`` types and rendered by the handlers in ``main``.
