"""Helpdesk <-> Jira ticket sync service"""
