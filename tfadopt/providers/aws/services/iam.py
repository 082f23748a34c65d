"""
IAM Service Module
==================

Discovers users, groups, customer-managed policies, roles and instance
profiles together with their inline policies, managed policy attachments,
group memberships and access keys.

IAM is a global service; the adapter works the same with the
``aws-global`` pseudo-region.

Post-Conversion
---------------
- Policy documents (``policy``, ``assume_role_policy``) are escaped and
  wrapped in a ``<<POLICY`` heredoc.
- ``policy_arn`` of attachments pointing at an in-set customer-managed
  policy becomes ``${aws_iam_policy.<name>.arn}``.
- Instance profiles lose ``roles``; their ``role`` is linked to the role.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from botocore.exceptions import ClientError

from tfadopt.core.base_service import BaseService
from tfadopt.core.references import (
    build_index,
    drop_fields,
    link_reference,
    policy_to_string,
    wrap_policy,
)
from tfadopt.core.resource import Resource

# Module logger
logger = logging.getLogger(__name__)

# Identifiers IAM assigns; kept for filtering and linking only
READ_ONLY_KEYS = ["^arn$", "^unique_id$", "^policy_id$"]

POLICY_TYPES = (
    "aws_iam_policy",
    "aws_iam_user_policy",
    "aws_iam_group_policy",
    "aws_iam_role_policy",
)

ATTACHMENT_TYPES = (
    "aws_iam_user_policy_attachment",
    "aws_iam_group_policy_attachment",
    "aws_iam_role_policy_attachment",
)


class IAMService(BaseService):
    """
    Discovery adapter for AWS Identity and Access Management.

    Top-level listings raise on failure. Per-principal follow-up calls
    (inline policies, attachments, memberships, keys) are logged at debug
    level and skipped when they fail.
    """

    def init_resources(self) -> None:
        """Load every IAM resource kind."""
        self.load_users()
        self.load_groups()
        self.load_policies()
        self.load_roles()
        self.load_instance_profiles()

    def _paginate(self, operation: str, key: str, **kwargs) -> List[Dict[str, Any]]:
        """Collect ``key`` from every page of ``operation``."""
        paginator = self.client("iam").get_paginator(operation)
        items: List[Dict[str, Any]] = []
        for page in paginator.paginate(**kwargs):
            items.extend(page.get(key, []))
        return items

    def _nested(self, operation: str, key: str, owner: str, **kwargs) -> List[Any]:
        """Like :meth:`_paginate`, but a failure yields an empty list."""
        try:
            return self._paginate(operation, key, **kwargs)
        except ClientError as e:
            self._log(f"Error in {operation} for {owner}: {e}", "debug")
            return []

    def _add(self, resource: Resource, read_only: bool = False) -> None:
        if read_only:
            resource.ignore_keys = list(READ_ONLY_KEYS)
        self.add_resource(resource)

    # =========================================================================
    # Users
    # =========================================================================

    def load_users(self) -> None:
        """Load users and their inline policies, attachments, groups and keys."""
        self._log("Loading IAM users...")

        users = self._paginate("list_users", "Users")
        for user in users:
            user_name = user["UserName"]
            self._add(
                self.create_resource(
                    user_name,
                    user_name,
                    "iam_user",
                    {
                        "name": user_name,
                        "path": user.get("Path"),
                        "force_destroy": False,
                    },
                    {"arn": user.get("Arn"), "unique_id": user.get("UserId")},
                ),
                read_only=True,
            )

            self.load_inline_policies("user", user_name)
            self.load_policy_attachments("user", user_name)
            self.load_user_groups(user_name)
            self.load_access_keys(user_name)

        self._log(f"Loaded {len(users)} IAM users")

    def load_user_groups(self, user_name: str) -> None:
        """Load a user's group membership as a single resource."""
        groups = self._nested(
            "list_groups_for_user", "Groups", user_name, UserName=user_name
        )
        if not groups:
            return

        group_names = [group["GroupName"] for group in groups]
        self._add(
            self.create_resource(
                "/".join([user_name] + group_names),
                f"{user_name}_groups",
                "iam_user_group_membership",
                {"user": user_name, "groups": group_names},
            )
        )

    def load_access_keys(self, user_name: str) -> None:
        """Load a user's access key metadata."""
        keys = self._nested(
            "list_access_keys", "AccessKeyMetadata", user_name, UserName=user_name
        )
        for key in keys:
            self._add(
                self.create_resource(
                    key["AccessKeyId"],
                    key["AccessKeyId"],
                    "iam_access_key",
                    {"user": user_name, "status": key.get("Status")},
                )
            )

    # =========================================================================
    # Groups
    # =========================================================================

    def load_groups(self) -> None:
        """Load groups and their inline policies and attachments."""
        self._log("Loading IAM groups...")

        groups = self._paginate("list_groups", "Groups")
        for group in groups:
            group_name = group["GroupName"]
            self._add(
                self.create_resource(
                    group_name,
                    group_name,
                    "iam_group",
                    {"name": group_name, "path": group.get("Path")},
                    {"arn": group.get("Arn"), "unique_id": group.get("GroupId")},
                ),
                read_only=True,
            )

            self.load_inline_policies("group", group_name)
            self.load_policy_attachments("group", group_name)

        self._log(f"Loaded {len(groups)} IAM groups")

    # =========================================================================
    # Policies
    # =========================================================================

    def load_policies(self) -> None:
        """Load customer-managed policies with their default version document."""
        self._log("Loading IAM policies...")

        policies = self._paginate("list_policies", "Policies", Scope="Local")
        for policy in policies:
            arn = policy["Arn"]
            self._add(
                self.create_resource(
                    arn,
                    policy["PolicyName"],
                    "iam_policy",
                    {
                        "name": policy["PolicyName"],
                        "path": policy.get("Path"),
                        "description": policy.get("Description"),
                        "policy": self._policy_document(arn, policy.get("DefaultVersionId")),
                    },
                    {"arn": arn, "policy_id": policy.get("PolicyId")},
                ),
                read_only=True,
            )

        self._log(f"Loaded {len(policies)} IAM policies")

    def _policy_document(self, arn: str, version_id: Optional[str]) -> Optional[str]:
        if not version_id:
            return None
        try:
            response = self.client("iam").get_policy_version(
                PolicyArn=arn, VersionId=version_id
            )
        except ClientError as e:
            self._log(f"Error fetching policy version for {arn}: {e}", "debug")
            return None
        return policy_to_string(response["PolicyVersion"].get("Document"))

    def load_inline_policies(self, kind: str, principal: str) -> None:
        """
        Load the inline policies of a user, group or role.

        Parameters
        ----------
        kind : {"user", "group", "role"}
            Principal kind.
        principal : str
            Principal name.
        """
        param = f"{kind.capitalize()}Name"
        iam = self.client("iam")
        policy_names = self._nested(
            f"list_{kind}_policies", "PolicyNames", principal, **{param: principal}
        )

        for policy_name in policy_names:
            try:
                response = getattr(iam, f"get_{kind}_policy")(
                    **{param: principal, "PolicyName": policy_name}
                )
                document = policy_to_string(response.get("PolicyDocument"))
            except ClientError as e:
                self._log(f"Error fetching {kind} policy {policy_name}: {e}", "debug")
                document = None

            self._add(
                self.create_resource(
                    f"{principal}:{policy_name}",
                    f"{principal}_{policy_name}",
                    f"iam_{kind}_policy",
                    {"name": policy_name, kind: principal, "policy": document},
                )
            )

    def load_policy_attachments(self, kind: str, principal: str) -> None:
        """Load the managed policy attachments of a user, group or role."""
        param = f"{kind.capitalize()}Name"
        attached = self._nested(
            f"list_attached_{kind}_policies",
            "AttachedPolicies",
            principal,
            **{param: principal},
        )

        for policy in attached:
            policy_arn = policy["PolicyArn"]
            self._add(
                self.create_resource(
                    f"{principal}/{policy_arn}",
                    f"{principal}_{policy['PolicyName']}",
                    f"iam_{kind}_policy_attachment",
                    {kind: principal, "policy_arn": policy_arn},
                )
            )

    # =========================================================================
    # Roles and Instance Profiles
    # =========================================================================

    def load_roles(self) -> None:
        """Load roles and their inline policies and attachments."""
        self._log("Loading IAM roles...")

        roles = self._paginate("list_roles", "Roles")
        for role in roles:
            role_name = role["RoleName"]
            self._add(
                self.create_resource(
                    role_name,
                    role_name,
                    "iam_role",
                    {
                        "name": role_name,
                        "path": role.get("Path"),
                        "description": role.get("Description"),
                        "max_session_duration": role.get("MaxSessionDuration"),
                        "assume_role_policy": policy_to_string(
                            role.get("AssumeRolePolicyDocument")
                        ),
                    },
                    {"arn": role.get("Arn"), "unique_id": role.get("RoleId")},
                ),
                read_only=True,
            )

            self.load_inline_policies("role", role_name)
            self.load_policy_attachments("role", role_name)

        self._log(f"Loaded {len(roles)} IAM roles")

    def load_instance_profiles(self) -> None:
        """Load instance profiles."""
        self._log("Loading IAM instance profiles...")

        profiles = self._paginate("list_instance_profiles", "InstanceProfiles")
        for profile in profiles:
            profile_name = profile["InstanceProfileName"]
            role_names = [role["RoleName"] for role in profile.get("Roles", [])]
            self._add(
                self.create_resource(
                    profile_name,
                    profile_name,
                    "iam_instance_profile",
                    {
                        "name": profile_name,
                        "path": profile.get("Path"),
                        "role": role_names[0] if role_names else None,
                        "roles": role_names,
                    },
                    {"arn": profile.get("Arn")},
                ),
                read_only=True,
            )

        self._log(f"Loaded {len(profiles)} IAM instance profiles")

    # =========================================================================
    # Post-Conversion
    # =========================================================================

    def convert(self, discovered: Sequence[Resource]) -> None:
        """Wrap policy documents and link attachments to in-set policies."""
        policies = build_index(self._resources, "aws_iam_policy", key="arn")
        roles = build_index(self._resources, "aws_iam_role", key="name")

        for resource in self._resources:
            if resource.type in POLICY_TYPES:
                wrap_policy(resource, "policy")
            elif resource.type == "aws_iam_role":
                wrap_policy(resource, "assume_role_policy")
            elif resource.type == "aws_iam_instance_profile":
                drop_fields(resource, "roles")
                link_reference(resource, "role", roles, "name")
            elif resource.type in ATTACHMENT_TYPES:
                link_reference(resource, "policy_arn", policies, "arn")
