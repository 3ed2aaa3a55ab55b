"""
Recommendation layer (BudgetBites)

Re-ranks recipes that search already produced, using each user's stored
preferences:
  - preference_store: loads sort key / order / priority weights from Supabase
  - preference_ranker: comparator-based sort and the weighted relevance score

The goal is to keep ranking *decoupled* from search and caching: search
decides which recipes qualify, this layer only decides their order.
"""
