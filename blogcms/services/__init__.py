# Services package.
#
# Each module exposes a focused set of async functions that encapsulate
# business logic and database access for a single domain aggregate:
#
#   article_service    — visibility rules, pagination + CRUD for Article
#   page_view_service  — view recording and analytics for PageView
#   user_service       — registration, login + CRUD for User
#
# All service functions accept an AsyncSession as their first argument
# so that the router layer controls the transaction boundary via the
# ``get_db`` dependency.
