"""Shop domain records written by tools.

The runtime only knows tools; tools read and write these tables. Everything
here is scoped by ``shop_id``, which is the run's tenant.
"""
