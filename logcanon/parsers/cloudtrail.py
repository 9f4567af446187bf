"""AWS CloudTrail parser."""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError

from logcanon.exceptions import DeserializationError
from logcanon.models import CoreRecord, IndicatorClass
from logcanon.timestamp import RFC3339Time
from logcanon.validation import constrained
from .base import LogParser, add_host_indicator, extract_json_indicators


class SessionIssuer(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Optional[str] = None
    principal_id: Optional[str] = Field(default=None, alias="principalId")
    arn: Optional[str] = None
    account_id: Optional[str] = Field(default=None, alias="accountId")
    user_name: Optional[str] = Field(default=None, alias="userName")


class SessionContext(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    attributes: Optional[Dict[str, Any]] = None
    session_issuer: Optional[SessionIssuer] = Field(default=None, alias="sessionIssuer")


@constrained(arn="arn")
class UserIdentity(BaseModel):
    """Who made the request."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: Optional[str] = None
    principal_id: Optional[str] = Field(default=None, alias="principalId")
    arn: Optional[str] = None
    account_id: Optional[str] = Field(default=None, alias="accountId")
    access_key_id: Optional[str] = Field(default=None, alias="accessKeyId")
    user_name: Optional[str] = Field(default=None, alias="userName")
    invoked_by: Optional[str] = Field(default=None, alias="invokedBy")
    session_context: Optional[SessionContext] = Field(default=None, alias="sessionContext")


@constrained(arn="arn")
class Resource(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    arn: Optional[str] = Field(default=None, alias="ARN", title="ARN")
    account_id: Optional[str] = Field(default=None, alias="accountId")
    type: Optional[str] = None


@constrained(
    event_version="required",
    user_identity="required",
    event_timestamp="required",
    event_source="required",
    event_name="required",
    aws_region="required",
    source_ip_address="required",
    event_id="required",
    event_type="required",
    recipient_account_id="required,len=12,numeric",
)
class CloudTrail(CoreRecord):
    """A single CloudTrail event record."""

    event_version: Optional[str] = Field(default=None, alias="eventVersion")
    user_identity: Optional[UserIdentity] = Field(default=None, alias="userIdentity")
    event_timestamp: Optional[RFC3339Time] = Field(default=None, alias="eventTime")
    event_source: Optional[str] = Field(default=None, alias="eventSource")
    event_name: Optional[str] = Field(default=None, alias="eventName")
    aws_region: Optional[str] = Field(default=None, alias="awsRegion", title="AWSRegion")
    source_ip_address: Optional[str] = Field(
        default=None, alias="sourceIPAddress", title="SourceIPAddress",
        description="IP address, or AWS service name, the request came from.",
    )
    user_agent: Optional[str] = Field(default=None, alias="userAgent")
    error_code: Optional[str] = Field(default=None, alias="errorCode")
    error_message: Optional[str] = Field(default=None, alias="errorMessage")
    request_parameters: Optional[Dict[str, Any]] = Field(default=None, alias="requestParameters")
    response_elements: Optional[Dict[str, Any]] = Field(default=None, alias="responseElements")
    additional_event_data: Optional[Dict[str, Any]] = Field(default=None, alias="additionalEventData")
    request_id: Optional[str] = Field(default=None, alias="requestID", title="RequestID")
    event_id: Optional[str] = Field(default=None, alias="eventID", title="EventID")
    event_type: Optional[str] = Field(default=None, alias="eventType")
    read_only: Optional[bool] = Field(default=None, alias="readOnly")
    resources: Optional[List[Resource]] = None
    api_version: Optional[str] = Field(default=None, alias="apiVersion")
    management_event: Optional[bool] = Field(default=None, alias="managementEvent")
    recipient_account_id: Optional[str] = Field(
        default=None, alias="recipientAccountId", title="RecipientAccountID",
    )
    shared_event_id: Optional[str] = Field(default=None, alias="sharedEventID", title="SharedEventID")
    vpc_endpoint_id: Optional[str] = Field(default=None, alias="vpcEndpointId", title="VPCEndpointID")


class CloudTrailRecords(BaseModel):
    """The ``{"Records": [...]}`` envelope CloudTrail writes to S3."""

    records: List[CloudTrail] = Field(alias="Records")


class CloudTrailParser(LogParser):
    """Parser for AWS CloudTrail log files. One file line holds many events."""

    LOG_TYPE = "AWS.CloudTrail"
    RECORD_TYPE = CloudTrail
    DESCRIPTION = (
        "AWSCloudTrail represents the content of a CloudTrail S3 object. "
        "Reference: https://docs.aws.amazon.com/awscloudtrail/latest/userguide/cloudtrail-event-reference.html"
    )

    def decode(self, raw: str) -> Sequence[CoreRecord]:
        try:
            return CloudTrailRecords.model_validate_json(raw).records
        except PydanticValidationError as e:
            raise DeserializationError(str(e)) from e

    def event_time(self, record: CloudTrail) -> Optional[datetime]:
        return record.event_timestamp

    def extract_indicators(self, record: CloudTrail) -> None:
        indicators = record.indicators

        # sourceIPAddress holds a service name like ec2.amazonaws.com for AWS-initiated calls
        add_host_indicator(indicators, record.source_ip_address)
        indicators.add(IndicatorClass.AWS_ACCOUNT_ID, record.recipient_account_id)

        identity = record.user_identity
        if identity is not None:
            indicators.add(IndicatorClass.AWS_ARN, identity.arn)
            indicators.add(IndicatorClass.AWS_ACCOUNT_ID, identity.account_id)
            issuer = identity.session_context.session_issuer if identity.session_context else None
            if issuer is not None:
                indicators.add(IndicatorClass.AWS_ARN, issuer.arn)
                indicators.add(IndicatorClass.AWS_ACCOUNT_ID, issuer.account_id)

        for resource in record.resources or []:
            indicators.add(IndicatorClass.AWS_ARN, resource.arn)
            indicators.add(IndicatorClass.AWS_ACCOUNT_ID, resource.account_id)

        extract_json_indicators(indicators, record.request_parameters)
        extract_json_indicators(indicators, record.response_elements)
