"""
Failure messages returned in Result.messages by command and query handlers.

Clients match on these strings, so they are kept verbatim in one place.
Templated messages take ``str.format`` keyword arguments.

Usage:
    from support_service.domain import error_messages as msg

    return Result.failure(msg.CONVERSATION_NOT_FOUND, code=ErrorCode.CONVERSATION_NOT_FOUND)
    return Result.failure(msg.USER_NOT_FOUND_TEMPLATE.format(user_id=user_id))
"""

# ========================================
# Authentication
# ========================================

USER_NOT_AUTHENTICATED = "User not authenticated"
USER_NOT_AUTHENTICATED_STRICT = "User not authenticated."
USER_CONTEXT_NOT_AVAILABLE = "User context not available."

# ========================================
# Conversations
# ========================================

CONVERSATION_NOT_FOUND = "Conversation not found"
CONVERSATION_NOT_FOUND_STRICT = "Conversation not found."
CONVERSATION_NOT_FOUND_OR_DENIED = "Conversation not found or access denied."
CONVERSATION_ID_NOT_FOUND_TEMPLATE = "Conversation with ID {conversation_id} not found"
CONVERSATION_ALREADY_ACCEPTED = "Conversation has already been accepted by another agent."
CONVERSATION_NOT_TRANSFERABLE = (
    "Conversation cannot be transferred. Only active conversations can be transferred."
)
INVALID_CONVERSATION_ID = "Invalid conversation ID format."
NOT_ASSIGNED_TO_CONVERSATION = "You are not assigned to this conversation."

RESOLUTION_NOTES_REQUIRED = "Resolution notes are required."
RESOLUTION_NOTES_TOO_SHORT = "Resolution notes must be at least 20 characters long."
RESOLUTION_NOTES_TOO_LONG = "Resolution notes cannot exceed 2000 characters."

CONVERSATION_ID_REQUIRED = "Conversation ID is required"
TARGET_AGENT_ID_REQUIRED = "Target agent ID is required"
TRANSFER_REASON_TOO_LONG = "Transfer reason cannot exceed 500 characters"

JOIN_VIEWERS_FAILED_TEMPLATE = "Error joining conversation viewers: {error}"
ACTIVE_CONVERSATIONS_FAILED_TEMPLATE = "Error retrieving active conversations: {error}"
PAST_CONVERSATIONS_FAILED_TEMPLATE = "Error retrieving past conversations: {error}"
CONVERSATIONS_FAILED_TEMPLATE = "Error retrieving conversations: {error}"
INCREMENTAL_MESSAGES_FAILED_TEMPLATE = "Error retrieving incremental messages: {error}"

# ========================================
# Insights
# ========================================

INSIGHT_ALREADY_EXISTS_TEMPLATE = "Insight already exists for conversation {conversation_id}"
INSIGHT_CREATE_FAILED_TEMPLATE = "Failed to create conversation insight: {error}"
INSIGHT_NOT_FOUND_TEMPLATE = "No insight found for conversation {conversation_id}"

# ========================================
# Agents
# ========================================

AGENT_NOT_FOUND = "Agent not found"
AGENT_ID_NOT_FOUND_TEMPLATE = "Agent with ID {agent_id} not found"
AGENT_PROFILE_NOT_FOUND = "Agent profile not found."
AGENT_NOT_AVAILABLE = "Agent is not available"
AGENT_NOT_AVAILABLE_TO_TAKE = "Agent is not available to take conversations"
AGENT_AT_CAPACITY = "Agent is at maximum capacity"
TARGET_AGENT_NOT_FOUND = "Target agent not found"
NEW_AGENT_NOT_FOUND = "New agent not found"
NEW_AGENT_NOT_AVAILABLE = "New agent is not available to take conversations"
NEW_AGENT_AT_CAPACITY = "New agent has reached maximum conversation capacity"
USER_NOT_FOUND_TEMPLATE = "User with ID {user_id} not found."
USER_ALREADY_AGENT_TEMPLATE = "User {user_name} is already an agent."
CONVERT_TO_AGENT_FAILED = "Failed to convert user to agent"
UPDATE_AGENT_STATUS_FAILED = "Failed to update agent status"
UPDATE_PREFERENCES_FAILED_TEMPLATE = "Failed to update agent preferences: {error}"

AUTO_ASSIGNMENT_DISABLED = "Auto-assignment is disabled"
NO_AVAILABLE_AGENTS = "No available agents"
AUTO_ASSIGNMENT_FAILED_TEMPLATE = "Auto-assignment failed: {error}"
UPDATE_AUTO_ASSIGNMENT_FAILED_TEMPLATE = "Failed to update settings: {error}"

# ========================================
# Issues
# ========================================

ISSUE_NOT_FOUND_TEMPLATE = "Issue with id: [{issue_id}] not found."
ISSUE_REFERENCE_UNAVAILABLE = "Unable to generate unique issue reference. Please try again."
ISSUE_CREATION_FAILED_TEMPLATE = (
    "Issue creation failed due to an unexpected error. "
    "Please contact support if this persists. Reference: {reference}"
)
PHONE_NUMBER_FORMAT = "Phone number must be in E.164 format (e.g., +1234567890)"

CANNOT_LINK_TO_SELF = "Cannot link an issue to itself"
CONFIDENCE_OUT_OF_RANGE = "Confidence score must be between 0.0 and 1.0"
PARENT_ISSUE_NOT_FOUND = "Parent issue not found"
CHILD_ISSUE_NOT_FOUND = "Child issue not found"
ISSUES_DIFFERENT_TENANTS = "Issues must belong to the same tenant"
ISSUE_LINK_EXISTS = "A link between these issues already exists"
ISSUE_LINK_CIRCULAR = "This link would create a circular reference"
ISSUE_LINK_NOT_FOUND = "Issue link not found"
LINK_ISSUES_FAILED_TEMPLATE = "Failed to link issues: {error}"
UNLINK_ISSUES_FAILED_TEMPLATE = "Failed to unlink issues: {error}"
UPDATE_ISSUE_FAILED_TEMPLATE = "Failed to update issue: {error}"
ISSUES_FAILED_TEMPLATE = "Error retrieving issues: {error}"
CONTACT_AUTO_CREATED = "Auto-created from WhatsApp issue intake"

# ========================================
# Request validation
# ========================================

AGENT_MESSAGE_REQUIRED = "Message content is required."
AGENT_MESSAGE_TOO_LONG = "Message content cannot exceed 1000 characters."

MAX_CONVERSATIONS_RANGE = "Max concurrent conversations must be between 1 and 50."
AGENT_PRIORITY_RANGE = "Priority must be between 1 and 10."
SKILLS_TOO_LONG = "Skills cannot exceed 1000 characters."
NOTES_TOO_LONG = "Notes cannot exceed 2000 characters."

SENTIMENT_SCORE_RANGE = "SentimentScore must be between -1.0 and 1.0."
SENTIMENT_LABEL_INVALID = "SentimentLabel is required and must not exceed 50 characters."
KEY_THEMES_TOO_MANY = "KeyThemes cannot exceed 10 items."
KEY_THEME_INVALID = "Each KeyTheme must be non-empty and not exceed 100 characters."
INDICATORS_TOO_MANY = "CustomerSatisfactionIndicators cannot exceed 10 items."
INDICATOR_INVALID = "Each CustomerSatisfactionIndicator must be non-empty and not exceed 200 characters."
RECOMMENDATIONS_TOO_MANY = "Recommendations cannot exceed 10 items."
RECOMMENDATION_INVALID = "Each Recommendation must be non-empty and not exceed 500 characters."
WARNINGS_TOO_MANY = "Warnings cannot exceed 20 items."
WARNING_INVALID = "Each Warning must be non-empty and not exceed 1000 characters."
PROCESSING_MODEL_INVALID = "ProcessingModel is required and must not exceed 50 characters."
PROCESSED_AT_IN_FUTURE = "ProcessedAt cannot be more than 5 minutes in the future."
PROCESSING_DURATION_RANGE = "ProcessingDuration must be between 0 and 1 hour."

INTAKE_CATEGORY_INVALID = "Category must be one of: Technical, Policy, Claims, Billing, Account, General"
INTAKE_SEVERITY_INVALID = "Severity must be one of: Critical, High, Medium, Low"
INTAKE_PRIORITY_INVALID = "Priority must be one of: Urgent, High, Medium, Low"
REPORTER_NAME_TOO_LONG = "Reporter name cannot exceed 100 characters."
CHANNEL_INVALID = "Channel is required and must not exceed 50 characters."
PRODUCT_INVALID = "Product is required and must not exceed 100 characters."
SUMMARY_INVALID = "Summary is required and must not exceed 200 characters."
DESCRIPTION_INVALID = "Description is required and must not exceed 2000 characters."

LINK_METADATA_TOO_LONG = "Metadata cannot exceed 1000 characters"
LINK_REASON_TOO_LONG = "Reason cannot exceed 500 characters"

# ========================================
# WhatsApp webhook
# ========================================

WHATSAPP_VERIFY_TOKEN_NOT_CONFIGURED = "Verify token not configured"
WHATSAPP_VERIFICATION_FAILED = "Verification failed"
SIGNATURE_HEADER_MISSING = "Signature header missing"
SIGNATURE_FORMAT_INVALID = "Invalid signature format"
SIGNATURE_MISMATCH = "Signature mismatch"
TIMESTAMP_OUT_OF_RANGE_TEMPLATE = "Request timestamp too old or future: {minutes:.1f} minutes"
WEBHOOK_PAYLOAD_INVALID = "Invalid webhook payload"
