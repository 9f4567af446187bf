"""AWS GuardDuty parser."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from logcanon.models import CoreRecord, IndicatorClass, Indicators
from logcanon.timestamp import RFC3339Time
from logcanon.validation import constrained
from .base import LogParser, add_host_indicator, extract_json_indicators


class _FindingModel(BaseModel):
    # unread finding details are kept for the rendered event
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class IpDetails(_FindingModel):
    ip_address_v4: Optional[str] = Field(default=None, alias="ipAddressV4")


class Tag(_FindingModel):
    key: Optional[str] = None
    value: Optional[str] = None


class NetworkInterface(_FindingModel):
    private_ip_address: Optional[str] = Field(default=None, alias="privateIpAddress")
    public_ip: Optional[str] = Field(default=None, alias="publicIp")
    private_dns_name: Optional[str] = Field(default=None, alias="privateDnsName")
    public_dns_name: Optional[str] = Field(default=None, alias="publicDnsName")


class InstanceDetails(_FindingModel):
    instance_id: Optional[str] = Field(default=None, alias="instanceId")
    tags: Optional[List[Tag]] = None
    network_interfaces: Optional[List[NetworkInterface]] = Field(default=None, alias="networkInterfaces")


class FindingResource(_FindingModel):
    """The AWS resource a finding is about."""

    resource_type: Optional[str] = Field(default=None, alias="resourceType")
    instance_details: Optional[InstanceDetails] = Field(default=None, alias="instanceDetails")
    access_key_details: Optional[Dict[str, Any]] = Field(default=None, alias="accessKeyDetails")


class NetworkConnectionAction(_FindingModel):
    remote_ip_details: Optional[IpDetails] = Field(default=None, alias="remoteIpDetails")
    local_ip_details: Optional[IpDetails] = Field(default=None, alias="localIpDetails")


class DnsRequestAction(_FindingModel):
    domain: Optional[str] = None


class DomainDetails(_FindingModel):
    domain: Optional[str] = None


class AwsApiCallAction(_FindingModel):
    remote_ip_details: Optional[IpDetails] = Field(default=None, alias="remoteIpDetails")
    domain_details: Optional[DomainDetails] = Field(default=None, alias="domainDetails")


class PortProbeDetail(_FindingModel):
    remote_ip_details: Optional[IpDetails] = Field(default=None, alias="remoteIpDetails")


class PortProbeAction(_FindingModel):
    port_probe_details: Optional[List[PortProbeDetail]] = Field(default=None, alias="portProbeDetails")


class FindingAction(_FindingModel):
    """Activity GuardDuty observed, one of the ``*Action`` members per ``actionType``."""

    action_type: Optional[str] = Field(default=None, alias="actionType")
    network_connection_action: Optional[NetworkConnectionAction] = Field(
        default=None, alias="networkConnectionAction",
    )
    dns_request_action: Optional[DnsRequestAction] = Field(default=None, alias="dnsRequestAction")
    aws_api_call_action: Optional[AwsApiCallAction] = Field(default=None, alias="awsApiCallAction")
    port_probe_action: Optional[PortProbeAction] = Field(default=None, alias="portProbeAction")


class FindingService(_FindingModel):
    action: Optional[FindingAction] = None


@constrained(
    schema_version="required",
    account_id="required,len=12,numeric",
    region="required",
    partition="required",
    id="required",
    arn="required,arn",
    type="required",
    resource="required",
    severity="required,min=0,max=10",
    created_at="required",
    updated_at="required",
    service="required",
)
class GuardDuty(CoreRecord):
    """A GuardDuty finding as exported to S3 or EventBridge."""

    schema_version: Optional[str] = Field(default=None, alias="schemaVersion")
    account_id: Optional[str] = Field(default=None, alias="accountId", title="AccountID")
    region: Optional[str] = None
    partition: Optional[str] = None
    id: Optional[str] = Field(default=None, title="ID")
    arn: Optional[str] = Field(default=None, title="Arn")
    type: Optional[str] = None
    resource: Optional[FindingResource] = None
    severity: Optional[float] = None
    created_at: Optional[RFC3339Time] = Field(default=None, alias="createdAt")
    updated_at: Optional[RFC3339Time] = Field(default=None, alias="updatedAt")
    title: Optional[str] = None
    description: Optional[str] = None
    service: Optional[FindingService] = None


def _ipv4(details: Optional[IpDetails]) -> Optional[str]:
    return details.ip_address_v4 if details is not None else None


class GuardDutyParser(LogParser):
    """Parser for AWS GuardDuty findings."""

    LOG_TYPE = "AWS.GuardDuty"
    RECORD_TYPE = GuardDuty
    DESCRIPTION = (
        "Amazon GuardDuty findings. "
        "Reference: https://docs.aws.amazon.com/guardduty/latest/ug/guardduty_findings.html"
    )

    def event_time(self, record: GuardDuty) -> Optional[datetime]:
        return record.updated_at

    def extract_indicators(self, record: GuardDuty) -> None:
        indicators = record.indicators
        indicators.add(IndicatorClass.AWS_ACCOUNT_ID, record.account_id)
        indicators.add(IndicatorClass.AWS_ARN, record.arn)

        if record.resource is not None:
            self._extract_resource(indicators, record.resource)
        if record.service is not None and record.service.action is not None:
            self._extract_action(indicators, record.service.action)

    def _extract_resource(self, indicators: Indicators, resource: FindingResource) -> None:
        """Instance id, tags and interface addresses of the affected instance."""
        instance = resource.instance_details
        if instance is not None:
            indicators.add(IndicatorClass.AWS_INSTANCE_ID, instance.instance_id)

            for tag in instance.tags or []:
                if tag.key:
                    indicators.add(IndicatorClass.AWS_TAG, f"{tag.key}:{tag.value or ''}")

            for iface in instance.network_interfaces or []:
                add_host_indicator(indicators, iface.private_ip_address)
                add_host_indicator(indicators, iface.public_ip)
                add_host_indicator(indicators, iface.private_dns_name)
                add_host_indicator(indicators, iface.public_dns_name)

        extract_json_indicators(indicators, resource.access_key_details)

    def _extract_action(self, indicators: Indicators, action: FindingAction) -> None:
        """Remote side of the activity GuardDuty observed."""
        if action.action_type == "NETWORK_CONNECTION" and action.network_connection_action:
            network = action.network_connection_action
            add_host_indicator(indicators, _ipv4(network.remote_ip_details))
            add_host_indicator(indicators, _ipv4(network.local_ip_details))
        elif action.action_type == "DNS_REQUEST" and action.dns_request_action:
            add_host_indicator(indicators, action.dns_request_action.domain)
        elif action.action_type == "AWS_API_CALL" and action.aws_api_call_action:
            api_call = action.aws_api_call_action
            add_host_indicator(indicators, _ipv4(api_call.remote_ip_details))
            if api_call.domain_details is not None:
                add_host_indicator(indicators, api_call.domain_details.domain)
        elif action.action_type == "PORT_PROBE" and action.port_probe_action:
            for detail in action.port_probe_action.port_probe_details or []:
                add_host_indicator(indicators, _ipv4(detail.remote_ip_details))
