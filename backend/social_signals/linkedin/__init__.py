"""
LinkedIn scraping integration module.

services wraps the Apify actors used to scrape LinkedIn engagement data;
utils normalizes LinkedIn identifiers and post URLs.
"""
