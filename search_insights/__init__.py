"""
Search Insights Engine

Turns raw search performance data into SEO intelligence:
1. Benchmarks click-through rates against position
2. Detects trends and sudden changes in time series
3. Classifies queries by search intent
4. Scores and ranks optimization opportunities
5. Generates prioritized, actionable recommendations
"""

__version__ = "0.1.0"
