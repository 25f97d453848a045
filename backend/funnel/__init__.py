"""MYND Matters funnel server: static site, affiliate attribution, Stripe checkout."""
