"""Scrape/parse/metric code for the Netgear cable modems that use the GenieLogin.asp web interface.

Developed against a CM1000 but from what I can find online the DocsisStatus.asp channel table is laid out the same
on the rest of the family, so there's no per-model split here.
"""
