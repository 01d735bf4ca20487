# Repositories package.
#
# Keyed-record storage over the ORM, one module per aggregate:
#
#   user_repository  — User records and the denormalized post counter
#   post_repository  — Post records and the feed queries
#
# Functions take an AsyncSession first and flush but never commit; the
# transaction boundary belongs to the ``get_db`` dependency.  ``update``
# on a missing id returns None and ``delete`` on a missing id is a no-op.
