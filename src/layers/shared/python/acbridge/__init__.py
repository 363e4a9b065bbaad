"""MemberPress signup attribution bridge to ActiveCampaign."""
