"""Log source integration requests.

These are the payloads used to onboard a log source. They are checked by
the same validation engine as parsed records, so the error strings match
what API clients already expect, e.g.::

    Key: 'PutIntegrationInput.PutIntegrationSettings.KmsKey' Error:Field validation for 'KmsKey' failed on the 'kmsKeyArn' tag
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from logcanon.validation import FieldError, constrained, get_validator


class IntegrationType(str, Enum):
    """Kinds of log source integrations."""
    AWS_S3 = "aws-s3"
    AWS_SCAN = "aws-scan"


INTEGRATION_TYPE_AWS3 = IntegrationType.AWS_S3.value
INTEGRATION_TYPE_AWS_SCAN = IntegrationType.AWS_SCAN.value


class _IntegrationModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


@constrained(
    aws_account_id="required,len=12,numeric",
    integration_label="required,integrationLabel",
    integration_type="required,oneof=aws-s3 aws-scan",
)
class GetIntegrationTemplateInput(_IntegrationModel):
    """Request for the onboarding template of a new integration."""

    aws_account_id: Optional[str] = Field(default=None, alias="awsAccountId", title="AWSAccountID")
    integration_label: Optional[str] = Field(default=None, alias="integrationLabel")
    integration_type: Optional[str] = Field(default=None, alias="integrationType")
    cwe_enabled: Optional[bool] = Field(default=None, alias="cweEnabled", title="CWEEnabled")
    remediation_enabled: Optional[bool] = Field(default=None, alias="remediationEnabled")
    s3_bucket: Optional[str] = Field(default=None, alias="s3Bucket", title="S3Bucket")
    s3_prefix: Optional[str] = Field(default=None, alias="s3Prefix", title="S3Prefix")
    kms_key: Optional[str] = Field(default=None, alias="kmsKey")


@constrained(
    aws_account_id="required,len=12,numeric",
    integration_label="required,integrationLabel",
    integration_type="required,oneof=aws-s3 aws-scan",
    user_id="required,uuid4",
    kms_key="kmsKeyArn",
    log_types="min=1",
)
class PutIntegrationSettings(_IntegrationModel):
    """Settings of an integration being created."""

    aws_account_id: Optional[str] = Field(default=None, alias="awsAccountId", title="AWSAccountID")
    integration_label: Optional[str] = Field(default=None, alias="integrationLabel")
    integration_type: Optional[str] = Field(default=None, alias="integrationType")
    user_id: Optional[str] = Field(default=None, alias="userId", title="UserID")
    cwe_enabled: Optional[bool] = Field(default=None, alias="cweEnabled", title="CWEEnabled")
    remediation_enabled: Optional[bool] = Field(default=None, alias="remediationEnabled")
    scan_interval_mins: Optional[int] = Field(default=None, alias="scanIntervalMins")
    s3_bucket: Optional[str] = Field(default=None, alias="s3Bucket", title="S3Bucket")
    s3_prefix: Optional[str] = Field(default=None, alias="s3Prefix", title="S3Prefix")
    kms_key: Optional[str] = Field(default=None, alias="kmsKey")
    log_types: Optional[List[str]] = Field(default=None, alias="logTypes")


@constrained(put_integration_settings="required")
class PutIntegrationInput(_IntegrationModel):
    """Request to create an integration."""

    put_integration_settings: Optional[PutIntegrationSettings] = Field(
        default=None, alias="putIntegrationSettings",
    )


def check_integration(request: BaseModel) -> List[FieldError]:
    """Field errors of an integration request; empty when it is valid."""
    return get_validator().validate(request)
