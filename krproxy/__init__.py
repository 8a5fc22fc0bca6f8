"""Korean API Proxy: allowlisted GET relay for the Export-Import Bank and UNI-PASS APIs."""
