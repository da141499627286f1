"""Raw TCP transport between the recommendation API and the aggregator.

One JSON array of products is written per connection. The sender reads
until the receiver closes; the receiver never replies.
"""
