from unittest.mock import MagicMock, patch

import pytest

from labkit.artifacts.user_data import apache_user_data, encode_user_data
from labkit.aws.ec2_instances import (
    ensure_web_security_group,
    latest_amazon_linux_ami,
    launch_instance,
    public_address,
    wait_for_http,
)
from labkit.errors import DeploymentError


def test__security_group__created_then_reused(ec2_client):
    sg_id = ensure_web_security_group("labkit-web-sg", ec2_client=ec2_client)

    group = ec2_client.describe_security_groups(GroupIds=[sg_id])["SecurityGroups"][0]
    opened = sorted(rule["FromPort"] for rule in group["IpPermissions"])
    assert opened == [22, 80]
    assert group["IpPermissions"][0]["IpRanges"][0]["CidrIp"] == "0.0.0.0/0"

    assert ensure_web_security_group("labkit-web-sg", ec2_client=ec2_client) == sg_id


def test__launch_instance__tags_and_defaults(ec2_client, some_ami):
    script = apache_user_data()

    result = launch_instance(some_ami, script, name="apache-lab", ec2_client=ec2_client)

    assert result["name"] == "apache-lab"
    assert result["state"] == "pending"

    instance = ec2_client.describe_instances(InstanceIds=[result["instance_id"]])["Reservations"][0]["Instances"][0]
    assert instance["InstanceType"] == "t2.micro"
    tags = {tag["Key"]: tag["Value"] for tag in instance["Tags"]}
    assert tags == {"Name": "apache-lab", "Project": "labkit"}


def test__launch_instance__with_security_group(ec2_client, some_ami):
    sg_id = ensure_web_security_group("labkit-web-sg", ec2_client=ec2_client)

    result = launch_instance(some_ami, "#!/bin/bash\n", security_group_ids=[sg_id],
                             instance_type="t3.micro", ec2_client=ec2_client)

    instance = ec2_client.describe_instances(InstanceIds=[result["instance_id"]])["Reservations"][0]["Instances"][0]
    assert instance["InstanceType"] == "t3.micro"
    assert [g["GroupId"] for g in instance["SecurityGroups"]] == [sg_id]


def test__latest_amazon_linux_ami__picks_newest():
    ec2_client = MagicMock()
    ec2_client.describe_images.return_value = {
        "Images": [
            {"ImageId": "ami-old", "CreationDate": "2024-01-01T00:00:00.000Z"},
            {"ImageId": "ami-new", "CreationDate": "2025-06-01T00:00:00.000Z"},
        ]
    }

    assert latest_amazon_linux_ami(ec2_client=ec2_client) == "ami-new"
    kwargs = ec2_client.describe_images.call_args.kwargs
    assert kwargs["Owners"] == ["amazon"]


def test__latest_amazon_linux_ami__none_found():
    ec2_client = MagicMock()
    ec2_client.describe_images.return_value = {"Images": []}

    with pytest.raises(DeploymentError):
        latest_amazon_linux_ami(ec2_client=ec2_client)


@patch("labkit.aws.ec2_instances.requests.get")
def test__wait_for_http__ready(mock_get):
    mock_get.return_value = MagicMock(status_code=200)

    assert wait_for_http("http://example.invalid", timeout_seconds=5) is True
    mock_get.assert_called_once_with("http://example.invalid", timeout=5)


def test__wait_for_http__timeout():
    assert wait_for_http("http://example.invalid", timeout_seconds=0) is False


def test__launch_instance__encodes_user_data():
    ec2_client = MagicMock()
    ec2_client.run_instances.return_value = {
        "Instances": [{"InstanceId": "i-123", "State": {"Name": "pending"}}]
    }

    launch_instance("ami-123", "#!/bin/bash\necho hi\n", key_name="lab-key", ec2_client=ec2_client)

    kwargs = ec2_client.run_instances.call_args.kwargs
    assert kwargs["UserData"] == encode_user_data("#!/bin/bash\necho hi\n")
    assert kwargs["KeyName"] == "lab-key"
    assert "SecurityGroupIds" not in kwargs


def test__public_address__prefers_dns_name():
    ec2_client = MagicMock()
    ec2_client.describe_instances.return_value = {
        "Reservations": [{"Instances": [{"PublicDnsName": "", "PublicIpAddress": "203.0.113.7"}]}]
    }

    assert public_address("i-123", ec2_client=ec2_client) == "203.0.113.7"
