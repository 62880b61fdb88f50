"""
Opportunity module.

An opportunity is a SAM.gov notice keyed by its notice id. The view in this
package is one analyst's open page for it: summary, chat, and bid actions.
"""
