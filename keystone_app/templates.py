"""Static reference data: checklist templates, default documents and enums."""

DEFAULT_HINT = "Complete this task to progress through the transaction."

CHECKLIST_HINTS = {
    "assess-value": "Consider both professional appraisal and online valuation tools. Recent comparable sales in the area are crucial for accurate pricing.",
    "home-inspection": "A pre-listing inspection can identify issues early, allowing you to address them before they become negotiating points.",
    "repairs-upgrades": "Focus on repairs that offer the best ROI. Kitchen and bathroom upgrades typically provide the highest return.",
    "declutter": "Remove personal photos, excess furniture, and organize closets to make spaces appear larger.",
    "staging": "Professional staging can help buyers visualize themselves in the space and typically leads to faster sales.",
    "curb-appeal": "First impressions matter. Consider fresh paint, landscaping, and cleaning exterior surfaces.",
    "select-agent": "Look for agents with experience in your specific market and property type.",
    "photos": "Professional photos can make your listing stand out online where most buyers start their search.",
    "listing-desc": "Focus on unique features and recent upgrades. Use descriptive but accurate language.",
    "showings": "Keep the home clean and available for showings. Consider using a lockbox for easier access.",
    "review-offers": "Consider all terms, not just price. A lower offer with better terms might be more advantageous.",
    "counter-offers": "Stay flexible on terms like closing date or included items to reach an agreement.",
    "accept-offer": "Once accepted, the offer becomes a binding contract. Review all terms carefully.",
    "appraisal": "The appraisal protects the lender. Having recent comparable sales data ready can help.",
    "buyer-inspection": "Be prepared to negotiate repairs or provide credits based on inspection findings.",
    "disclosures": "Full disclosure protects you legally. When in doubt, disclose.",
    "title-search": "Address any title issues early to prevent closing delays.",
    "cancel-utilities": "Schedule utility transfers for the day after closing to ensure continuous service.",
    "moving-prep": "Start packing early and label boxes clearly for easier unpacking.",
    "final-walkthrough": "Remove all personal items and leave the property in clean condition.",
    "review-docs": "Take time to understand each document. Don't hesitate to ask questions.",
    "sign-docs": "Bring proper identification and any required documents to closing.",
    "hand-over-keys": "Provide all keys, garage door openers, and access codes.",
    "change-address": "Update your address with USPS, credit cards, and subscriptions.",
    "complete-move": "Double-check all spaces, including attic and basement, before final move-out.",
    "buying-criteria": "Define your must-haves vs. nice-to-haves. Consider location, size, and amenities.",
    "hire-agent": "Interview multiple agents to find one who understands your needs and communication style.",
    "get-preapproval": "Get preapproved before house hunting to understand your budget and strengthen offers.",
    "preliminary-inspection": "Look for obvious red flags during viewings like water damage or foundation issues.",
    "attend-viewings": "Take notes and photos during viewings to help remember details of each property.",
    "submit-offer": "Include all terms and contingencies in writing. Your agent can advise on competitive offers.",
    "negotiate-terms": "Consider both price and other terms like closing date and included items.",
    "earnest-money": "Typically 1-3% of purchase price to show good faith in the transaction.",
    "order-appraisal": "Required by most lenders to ensure the property value supports the loan amount.",
    "additional-checks": "Consider specialized inspections for specific concerns like radon or termites.",
    "review-title": "Title insurance protects against ownership disputes or liens.",
    "title-insurance": "Required by lenders but also important for buyer protection.",
    "finalize-mortgage": "Provide all required documentation promptly to avoid closing delays.",
    "lock-rate": "Discuss rate lock timing with your lender to secure the best rate.",
    "secure-insurance": "Shop multiple insurance providers for the best coverage and rates.",
    "arrange-utilities": "Set up utilities in your name starting on the closing date.",
    "prepare-moving": "Get multiple moving quotes and start packing non-essential items early.",
    "secure-funds": "Arrange for closing funds well in advance of closing date.",
    "wire-funds": "Double-check wire instructions to avoid fraud.",
    "power-of-attorney": "If needed, arrange for power of attorney well before closing.",
    "change-locks": "Change all exterior door locks and garage codes after closing.",
    "file-homestead": "File for homestead exemption if available in your area.",
    "begin-maintenance": "Start a home maintenance schedule and register major appliances.",
}

# (id, phase, text)
SELLER_CHECKLIST_TEMPLATE = [
    ("assess-value", "Pre-Listing Preparation", "Assess Home Value: Hire a real estate appraiser or use online tools to determine a competitive listing price"),
    ("home-inspection", "Pre-Listing Preparation", "Conduct pre-listing inspection to identify any issues that might need fixing before listing"),
    ("repairs-upgrades", "Pre-Listing Preparation", "Make necessary repairs or upgrades based on inspection. Focus on high-impact areas like kitchens and bathrooms"),
    ("declutter", "Pre-Listing Preparation", "Remove personal items and declutter to make the home more appealing to potential buyers"),
    ("staging", "Pre-Listing Preparation", "Either stage the home yourself or hire a professional to enhance its appeal"),
    ("curb-appeal", "Pre-Listing Preparation", "Enhance the exterior; mow the lawn, plant flowers, paint the front door if needed"),
    ("select-agent", "Listing Phase", "Choose an agent with good local market knowledge and successful sales records"),
    ("photos", "Listing Phase", "Invest in high-quality photos and possibly a virtual tour for online listings"),
    ("listing-desc", "Listing Phase", "Write a compelling listing: Highlight unique features, recent upgrades, and neighborhood attractions"),
    ("showings", "Listing Phase", "Coordinate with your agent for open houses and private showings, ensuring the home is always ready"),
    ("review-offers", "Offer and Negotiation", "Analyze each offer with your agent, focusing on price, contingencies, and the buyer's financial status"),
    ("counter-offers", "Offer and Negotiation", "Be prepared to negotiate; consider terms beyond just price, like closing dates or included furnishings"),
    ("accept-offer", "Offer and Negotiation", "Once you agree on terms, sign the purchase agreement"),
    ("appraisal", "Post-Acceptance", "Coordinate with the buyer's lender for the appraisal. Be ready to address any discrepancies if the appraisal comes in low"),
    ("buyer-inspection", "Post-Acceptance", "Allow for the buyer's inspection, and be open to negotiating repairs or price adjustments"),
    ("disclosures", "Post-Acceptance", "Complete and provide all necessary property disclosure documents about known defects or issues"),
    ("title-search", "Post-Acceptance", "Ensure there are no liens or issues with the title that could delay or derail the sale"),
    ("cancel-utilities", "Closing Preparation", "Arrange to cancel or transfer utilities like water, gas, and electricity on the closing date"),
    ("moving-prep", "Closing Preparation", "Schedule movers or plan your move. Consider packing non-essential items early"),
    ("final-walkthrough", "Closing Preparation", "Agree to a time for the buyer's final walkthrough, usually 24-48 hours before closing"),
    ("review-docs", "Closing", "Go over all documents with your agent or attorney to ensure everything is correct"),
    ("sign-docs", "Closing", "Attend the closing either in person or via electronic means if permitted"),
    ("hand-over-keys", "Closing", "After receiving payment confirmation, provide keys and garage door openers to the new owner"),
    ("change-address", "Post-Closing", "Update your address with banks, employers, subscriptions, etc"),
    ("complete-move", "Post-Closing", "Ensure all personal belongings are moved out, and the house is left in agreed-upon condition"),
]

BUYER_CHECKLIST_TEMPLATE = [
    ("buying-criteria", "Pre-Offer", "Determine buying criteria"),
    ("hire-agent", "Pre-Offer", "Hire a real estate agent"),
    ("get-preapproval", "Pre-Offer", "Hire a lender & get pre-approved"),
    ("review-disclosures", "Pre-Offer", "Review property disclosures"),
    ("preliminary-inspection", "Pre-Offer", "Conduct preliminary inspections"),
    ("attend-viewings", "Pre-Offer", "Attend open houses or viewings"),
    ("submit-offer", "Offer and Negotiation", "Write and submit an offer"),
    ("negotiate-terms", "Offer and Negotiation", "Negotiate terms if counteroffer received"),
    ("review-contingencies", "Offer and Negotiation", "Review and agree on contingencies"),
    ("sign-acceptance", "Offer and Negotiation", "Sign offer acceptance or counteroffer"),
    ("earnest-money", "Offer and Negotiation", "Include earnest money deposit"),
    ("home-inspection", "Due Diligence", "Schedule and conduct home inspection"),
    ("review-inspection", "Due Diligence", "Review inspection report"),
    ("negotiate-repairs", "Due Diligence", "Negotiate repairs or price adjustments"),
    ("order-appraisal", "Due Diligence", "Order appraisal"),
    ("review-appraisal", "Due Diligence", "Review appraisal report"),
    ("additional-checks", "Due Diligence", "Perform additional due diligence"),
    ("review-title", "Due Diligence", "Review title report"),
    ("title-insurance", "Due Diligence", "Obtain title insurance"),
    ("finalize-mortgage", "Due Diligence", "Finalize mortgage details"),
    ("lock-rate", "Due Diligence", "Lock in mortgage rate"),
    ("final-walkthrough", "Closing Preparation", "Final walkthrough of property"),
    ("confirm-conditions", "Closing Preparation", "Confirm all conditions of sale"),
    ("secure-insurance", "Closing Preparation", "Secure homeowners insurance"),
    ("arrange-utilities", "Closing Preparation", "Arrange for utilities transfer"),
    ("prepare-moving", "Closing Preparation", "Prepare for moving"),
    ("review-closing-docs", "Closing Preparation", "Review closing documents"),
    ("secure-funds", "Closing Preparation", "Secure funds for closing"),
    ("wire-funds", "Closing Preparation", "Wire funds or obtain cashier's check"),
    ("power-of-attorney", "Closing Preparation", "Sign power of attorney if needed"),
    ("attend-closing", "Closing", "Attend closing"),
    ("sign-documents", "Closing", "Sign all closing documents"),
    ("receive-keys", "Closing", "Receive keys to the property"),
    ("change-locks", "Post-Closing", "Change locks and security systems"),
    ("update-address", "Post-Closing", "Update address with relevant parties"),
    ("file-homestead", "Post-Closing", "File homestead exemption if applicable"),
    ("begin-maintenance", "Post-Closing", "Begin maintenance and warranty registration"),
]


def checklist_template_for(transaction_type):
    """Return fresh checklist items for a transaction type.

    ``sell`` gets the seller template; any other value falls back to the
    buyer template.
    """
    normalized = (transaction_type or "").strip().lower()
    template = SELLER_CHECKLIST_TEMPLATE if normalized == "sell" else BUYER_CHECKLIST_TEMPLATE
    return [
        {"id": item_id, "text": text, "phase": phase, "completed": False}
        for item_id, phase, text in template
    ]


def hint_for(item_id):
    return CHECKLIST_HINTS.get(item_id, DEFAULT_HINT)


# (code, name)
DEFAULT_DOCUMENTS = [
    ("iabs", "IABS"),
    ("buyer_rep", "Buyer Rep Agreement"),
    ("listing_agreement", "Listing Agreement"),
    ("seller_disclosure", "Seller's Disclosure"),
    ("property_survey", "Property Survey"),
    ("lead_paint", "Lead-Based Paint Disclosure"),
    ("purchase_agreement", "Purchase Agreement"),
    ("hoa_addendum", "HOA Addendum"),
    ("inspection", "Home Inspection Report"),
]

DOCUMENT_STATUS_LABELS = {
    "not_applicable": "Not Applicable",
    "waiting_signatures": "Waiting On Signature(s)",
    "signed": "Signed",
    "waiting_others": "Waiting On Others",
    "complete": "Complete",
}
DOCUMENT_STATUSES = tuple(DOCUMENT_STATUS_LABELS)
DEFAULT_DOCUMENT_STATUS = "not_applicable"

PIPELINE_STAGE_LABELS = {
    "prospect": "Prospect",
    "active_listing_prep": "Active Listing Prep",
    "live_listing": "Live Listing",
    "under_contract": "Under Contract",
    "closed": "Closed",
}
PIPELINE_STAGES = tuple(PIPELINE_STAGE_LABELS)
INITIAL_STAGE = "prospect"

TRANSACTION_TYPES = ("buy", "sell")

CONTACT_ROLES = (
    "Buyer",
    "Seller",
    "Listing Agent",
    "Buyer Agent",
    "Lender",
    "Escrow Officer",
    "Home Inspector",
    "Transaction Coordinator",
)

CLIENT_TYPES = ("buyer", "seller")
CLIENT_STATUSES = ("active", "inactive", "pending")

USER_ROLES = ("agent", "client")
